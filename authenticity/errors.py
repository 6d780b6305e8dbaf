class InputDecodeError(ValueError):
    """Raised when the uploaded bytes are not a decodable, supported image."""

    def __init__(self, message: str, filename: str = ""):
        super().__init__(message)
        self.filename = filename
