from ipaddress import IPv4Address
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError


class Address(NamedTuple):
    """An IPv4 host plus a UDP port"""

    host: IPv4Address
    port: int

    @property
    def sockaddr(self):
        return (str(self.host), self.port)

    def __str__(self):
        return f"{self.host}:{self.port}"


class RelayConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = Field(gt=0, le=65535, description="UDP port shared by every source and destination")
    sources: List[IPv4Address] = Field(min_length=1, description="Local addresses to receive on, in scan order")
    dests: List[IPv4Address] = Field(min_length=1, description="Addresses every datagram is written to, in order")
    verbose: int = Field(default=0, ge=0, description="Verbosity count; non-zero reports byte counts")
    status_host: str = Field(default="127.0.0.1", description="Interface for the HTTP status endpoint")
    status_port: Optional[int] = Field(default=None, gt=0, le=65535, description="Port for the HTTP status endpoint")

    @classmethod
    def create(cls, **values):
        """Validate ``values``, raising ConfigurationError instead of ValidationError"""
        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"invalid configuration ({problems})") from e

    def source_addresses(self) -> List[Address]:
        return [Address(host, self.port) for host in self.sources]

    def dest_addresses(self) -> List[Address]:
        return [Address(host, self.port) for host in self.dests]
