from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PricingConfigurationError(ServiceError):
    """No usable pricing configuration. Billing must not produce totals without one."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class DataFetchError(ServiceError):
    """Underlying storage failed while loading billing inputs."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)
