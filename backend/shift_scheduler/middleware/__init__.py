from .api_key import ApiKeyMiddleware
from .error_handler import ErrorHandlerMiddleware

__all__ = ["ApiKeyMiddleware", "ErrorHandlerMiddleware"]
