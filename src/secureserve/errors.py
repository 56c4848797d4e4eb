"""Error types shared across secureserve.

Every fatal startup step raises a subclass of StartupError so the CLI can
report it and pick an exit code without the step terminating the process.
"""


class StartupError(Exception):
    """Base exception for unrecoverable startup failures."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")
