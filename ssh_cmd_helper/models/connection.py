from typing import Optional
from pydantic import BaseModel, Field


class ConnectionRequest(BaseModel):
    host: str = Field(..., min_length=1, description="Remote server hostname or IP")
    port: int = Field(default=22, ge=1, le=65535, description="SSH port")
    username: str = Field(..., min_length=1, description="SSH username")
    password: Optional[str] = Field(
        default=None, description="Password for password auth"
    )
    timeout: float = Field(
        default=60, ge=0, description="TCP connect timeout in seconds"
    )

    @property
    def target(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"
