from typing import Any, Dict, Optional


class TrafficAdapterError(Exception):
    """Base error carrying the HTTP status it should be rendered with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> Dict[str, Any]:
        return {'error': self.message}


class MissingCredentialsError(TrafficAdapterError):
    """Credentials are incomplete after every source was consulted."""

    status_code = 401

    def __init__(self, message: str = "Missing credentials", status_code: Optional[int] = None):
        super().__init__(message, status_code)


class InvalidMetricError(TrafficAdapterError):
    """The metric key is not known to the registry that was asked."""

    status_code = 400

    def __init__(self, metric_key: Optional[str], message: str = "Invalid metric"):
        super().__init__(message)
        self.metric_key = metric_key


class UpstreamQueryError(TrafficAdapterError):
    """Upstream answered with structured query errors; the payload is echoed verbatim."""

    status_code = 400

    def __init__(self, payload: Dict[str, Any]):
        super().__init__("Upstream query error")
        self.payload = payload

    def to_payload(self) -> Dict[str, Any]:
        return self.payload


class UpstreamTransportError(TrafficAdapterError):
    """Upstream HTTP call did not succeed."""

    def __init__(self, message: str, status_code: int = 500, detail: Optional[str] = None):
        super().__init__(message, status_code)
        self.detail = detail

    def to_payload(self) -> Dict[str, Any]:
        payload = {'error': self.message}
        if self.detail is not None:
            payload['detail'] = self.detail
        return payload


class InternalError(TrafficAdapterError):
    status_code = 500
