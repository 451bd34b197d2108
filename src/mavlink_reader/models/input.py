"""
Input Request Schemas
=====================

Pydantic models for requests accepted by the HTTP service.

Example:
    from mavlink_reader.models.input import ConnectRequest

    request = ConnectRequest.model_validate({"host": "192.168.1.1", "port": 14550})
"""

from pydantic import BaseModel, Field


class ConnectRequest(BaseModel):
    """
    Request to open the link to a flight controller.

    Attributes:
        host: Controller address (datagrams are sent here)
        port: Controller UDP port
    """

    host: str = Field(
        ...,
        min_length=1,
        description="Flight controller address",
    )

    port: int = Field(
        default=14550,
        ge=1,
        le=65535,
        description="Flight controller UDP port",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "host": "192.168.1.1",
                "port": 14550,
            }
        }
    }
