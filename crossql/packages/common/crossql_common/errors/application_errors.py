class ApplicationError(Exception):
    pass


class InvalidRequest(ApplicationError):
    pass
