"""Custom exceptions for the POS application."""

class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Ocurrió un error interno", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['error'] = self.message
        return rv

class ValidationError(PosError):
    """Raised for invalid input; nothing has been written."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class ConflictError(PosError):
    """Raised when the current state forbids the operation (e.g. cash session rules)."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)

class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, 404, payload)

class StorageError(PosError):
    """Raised when the database failed mid-operation. The unit of work was rolled back."""
    def __init__(self, message="Error de almacenamiento, la operación no se aplicó. Intente de nuevo."):
        super().__init__(message, 500)

class UnauthorizedError(PosError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Acceso no autorizado"):
        super().__init__(message, 403)
