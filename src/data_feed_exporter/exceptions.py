"""Custom exception hierarchy for the data feed exporter."""

from __future__ import annotations


class DataFeedExporterError(Exception):
    """Base exception for all data feed exporter errors.

    Every exporter-specific error carries an optional context dictionary that
    is rendered into the string form and forwarded to structured logs.
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, object] | None = None,
    ) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: The error message.
            context: Optional context dictionary with additional error information.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class RpcError(DataFeedExporterError):
    """Base exception for RPC-related errors.

    Raised when an RPC call fails because of network issues, timeouts,
    JSON-RPC error responses or contract reverts.
    """

    def __init__(
        self,
        message: str,
        *,
        job: str | None = None,
        rpc_url: str | None = None,
        operation: str | None = None,
        target: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        """Initialize the RPC error with context.

        Args:
            message: The error message.
            job: The name of the job issuing the call.
            rpc_url: The RPC URL. It is not added to the context, which is
                rendered into logs.
            operation: The RPC operation that failed.
            target: The contract address the call was sent to.
            context: Optional additional context.
        """
        rpc_context: dict[str, object] = {}
        if job:
            rpc_context["job"] = job
        if operation:
            rpc_context["operation"] = operation
        if target:
            rpc_context["target"] = target
        if context:
            rpc_context.update(context)

        super().__init__(message, context=rpc_context)
        self.job = job
        self.rpc_url = rpc_url
        self.operation = operation
        self.target = target


class RpcConnectionError(RpcError):
    """Raised when unable to connect to an RPC endpoint."""


class RpcTimeoutError(RpcError):
    """Raised when an RPC call exceeds the request timeout."""


class RpcProtocolError(RpcError):
    """Raised on a JSON-RPC error response or a contract revert."""

    def __init__(
        self,
        message: str,
        *,
        rpc_error_code: int | None = None,
        rpc_error_message: str | None = None,
        **kwargs: object,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if rpc_error_code is not None:
            context["rpc_error_code"] = rpc_error_code
        if rpc_error_message:
            context["rpc_error_message"] = rpc_error_message
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.rpc_error_code = rpc_error_code
        self.rpc_error_message = rpc_error_message


class DecodeError(DataFeedExporterError):
    """Raised when an RPC result cannot be decoded into a number."""

    def __init__(self, message: str, *, value: object | None = None) -> None:
        context: dict[str, object] = {}
        if value is not None:
            context["value"] = value
        super().__init__(message, context=context)
        self.value = value


class MetricRegistrationError(DataFeedExporterError):
    """Raised when a metric family cannot be registered.

    This is a construction-time failure; a job that hits it never starts.
    """

    def __init__(self, message: str, *, metric_name: str | None = None) -> None:
        context: dict[str, object] = {}
        if metric_name:
            context["metric_name"] = metric_name
        super().__init__(message, context=context)
        self.metric_name = metric_name


class ConfigError(DataFeedExporterError):
    """Base exception for configuration-related errors.

    Raised when configuration files cannot be loaded, parsed, or validated.
    """

    def __init__(
        self,
        message: str,
        *,
        config_file: str | None = None,
        config_section: str | None = None,
        config_key: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        """Initialize the configuration error with context.

        Args:
            message: The error message.
            config_file: The configuration file path.
            config_section: The configuration section (e.g., "chainlink_data_feed[1]").
            config_key: The configuration key.
            context: Optional additional context.
        """
        config_context: dict[str, object] = {}
        if config_file:
            config_context["config_file"] = config_file
        if config_section:
            config_context["config_section"] = config_section
        if config_key:
            config_context["config_key"] = config_key
        if context:
            config_context.update(context)

        super().__init__(message, context=config_context)
        self.config_file = config_file
        self.config_section = config_section
        self.config_key = config_key


class ValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        *,
        value: object | None = None,
        expected_type: str | None = None,
        **kwargs: object,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if value is not None:
            context["value"] = value
        if expected_type:
            context["expected_type"] = expected_type
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.value = value
        self.expected_type = expected_type


__all__ = [
    "ConfigError",
    "DataFeedExporterError",
    "DecodeError",
    "MetricRegistrationError",
    "RpcConnectionError",
    "RpcError",
    "RpcProtocolError",
    "RpcTimeoutError",
    "ValidationError",
]
