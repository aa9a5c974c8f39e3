class ApiError(Exception):
    """Base class for errors that map onto a JSON ``{message, subMessage}`` response."""

    status_code = 500
    default_message = 'Something went wrong'

    def __init__(self, message=None, sub_message=None):
        self.message = message or self.default_message
        self.sub_message = sub_message
        super().__init__(self.message)

    def to_dict(self):
        payload = {'message': self.message}
        if self.sub_message:
            payload['subMessage'] = self.sub_message
        return payload


class ValidationError(ApiError):
    status_code = 400
    default_message = 'Invalid request'


class Unauthorized(ApiError):
    status_code = 401
    default_message = 'Unauthorized'


class Forbidden(ApiError):
    status_code = 403
    default_message = 'Admins only!'


class NotFound(ApiError):
    status_code = 404
    default_message = 'Not found'


class Conflict(ApiError):
    status_code = 409
    default_message = 'Conflict'


class ServerFault(ApiError):
    status_code = 500
