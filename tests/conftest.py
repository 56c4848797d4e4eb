"""Shared pytest fixtures for secureserve tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from secureserve.password import Credential
from secureserve.tls import ensure_certificate


@pytest.fixture
def words_file(tmp_path):
    """Small word list with surrounding whitespace and blank lines."""
    path = tmp_path / 'words'
    path.write_text("apple\n  banana \ncherry\r\n\n\ndate\n")
    return path


@pytest.fixture
def credential():
    """Fixed credential for server tests."""
    return Credential(password='applebananacherry')


@pytest.fixture(scope='session')
def session_tls_config(tmp_path_factory):
    """One certificate pair shared by tests that only need to load it."""
    return ensure_certificate(tmp_path_factory.mktemp('certs'))


@pytest.fixture
def served_dir(tmp_path):
    """Directory with an index.html and a nested file."""
    root = tmp_path / 'www'
    (root / 'sub').mkdir(parents=True)
    (root / 'index.html').write_text('<h1>hello</h1>\n')
    (root / 'sub' / 'notes.txt').write_text('nested\n')
    return root
