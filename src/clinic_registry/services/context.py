"""Explicit dependencies shared by every use case."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from ..auth.jwt_auth import JWTTokenManager
from ..auth.security import DEFAULT_ITERATIONS
from ..config import ClinicRegistryConfig
from ..core.ids import new_uuid7, utc_now
from ..store.gateway import StoreGateway


@dataclass
class ServiceContext:
    """Built once at startup and handed to each service.

    Tests swap the clock and id generator for deterministic values.
    """

    gateway: StoreGateway
    tokens: JWTTokenManager
    clock: Callable[[], datetime] = utc_now
    new_id: Callable[[], UUID] = new_uuid7
    password_hash_iterations: int = DEFAULT_ITERATIONS
    default_page_limit: int = 20
    max_page_limit: int = 100

    @classmethod
    def from_config(
        cls,
        config: ClinicRegistryConfig,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = utc_now,
        new_id: Callable[[], UUID] = new_uuid7,
    ) -> "ServiceContext":
        return cls(
            gateway=StoreGateway(session_factory),
            tokens=JWTTokenManager(
                secret_key=config.auth.jwt_secret_key,
                issuer=config.auth.jwt_issuer,
                access_token_expires_minutes=config.auth.jwt_access_token_expires_minutes,
                clock=clock,
            ),
            clock=clock,
            new_id=new_id,
            password_hash_iterations=config.auth.password_hash_iterations,
            default_page_limit=config.app.default_page_limit,
            max_page_limit=config.app.max_page_limit,
        )
