from pydantic import BaseModel, ConfigDict, Field


class BaseConnectorConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")


class AsyncStatementConnectorConfig(BaseConnectorConfig):
    """Polling behaviour shared by connectors that submit statements asynchronously."""

    poll_interval_s: float = Field(default=1.0, ge=0)
    max_wait_s: float = Field(default=60.0, ge=0)
    cancel_on_timeout: bool = False
