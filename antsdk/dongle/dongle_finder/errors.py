from ...errors import AntError


class DongleNotFoundError(AntError):
    """Raised when no matching dongle could be found."""
    pass


class MultipleDonglesError(AntError):
    """Raised when more than one matching dongle is found."""
    def __init__(self, message, devices):
        super().__init__(message)
        self.devices = devices  # list[DongleInfo] but avoid circular imports
