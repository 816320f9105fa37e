class ServiceError(Exception):
    """
    Base class for the typed outcomes of a failed operation.
    Carries an HTTP status so the API layer can surface it verbatim.
    """
    status_code = 500
    error_type = 'error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {
            'type': self.error_type,
            'message': self.message,
            'details': self.details
        }


class NotFound(ServiceError):
    status_code = 404
    error_type = 'not_found'


class Forbidden(ServiceError):
    status_code = 403
    error_type = 'forbidden'


class ValidationError(ServiceError):
    status_code = 400
    error_type = 'validation_error'


class Conflict(ServiceError):
    status_code = 409
    error_type = 'conflict'
