"""Server and listener infrastructure settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings

SUPPORTED_PROTOCOLS = ("tcp", "tcp4", "tcp6")


class ServerSettings(InfrastructureSettings):
    """HTTP listener configuration.

    Environment Variables:
        PERSISTER_PROTOCOL: Network protocol to listen on (tcp, tcp4, tcp6; default: tcp4)
        PERSISTER_ADDR: Address to bind the http server to (default: :11185)
        PERSISTER_READ_TIMEOUT_SECONDS: Maximum time to read a request (default: 300)
        PERSISTER_WRITE_TIMEOUT_SECONDS: Maximum time to write a response (default: 300).
            Not enforced, uvicorn has no per-response write deadline.
        PERSISTER_IDLE_TIMEOUT_SECONDS: Keep-alive idle timeout (default: 300)
        PERSISTER_SHUTDOWN_TIMEOUT_SECONDS: Grace period for in-flight requests
            on shutdown before connections are dropped (default: 30)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        proto, addr = settings.server.PROTOCOL, settings.server.ADDRESS
        ```
    """

    PROTOCOL: str = Field(default="tcp4", alias="PERSISTER_PROTOCOL")
    ADDRESS: str = Field(default=":11185", alias="PERSISTER_ADDR")
    READ_TIMEOUT_SECONDS: int = Field(
        default=300, alias="PERSISTER_READ_TIMEOUT_SECONDS"
    )
    WRITE_TIMEOUT_SECONDS: int = Field(
        default=300, alias="PERSISTER_WRITE_TIMEOUT_SECONDS"
    )
    IDLE_TIMEOUT_SECONDS: int = Field(
        default=300, alias="PERSISTER_IDLE_TIMEOUT_SECONDS"
    )
    SHUTDOWN_TIMEOUT_SECONDS: int = Field(
        default=30, alias="PERSISTER_SHUTDOWN_TIMEOUT_SECONDS"
    )

    @field_validator("PROTOCOL", mode="before")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        """Default to tcp4 when empty and reject unknown protocols."""
        if v is None or str(v).strip() == "":
            return "tcp4"
        v = str(v).strip().lower()
        if v not in SUPPORTED_PROTOCOLS:
            raise ValueError(
                f"unsupported protocol {v!r}, expected one of {SUPPORTED_PROTOCOLS}"
            )
        return v
