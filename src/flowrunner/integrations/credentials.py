"""
Credential rotation for services used by action nodes
"""
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ..exceptions import CredentialError
from ..models.execution import utcnow


logger = logging.getLogger(__name__)


@dataclass
class Credentials:
    api_key: str
    secret: str
    generated_at: datetime = field(default_factory=utcnow)


@dataclass
class CredentialEntry:
    current: Credentials
    rotation_period: timedelta
    backup: Optional[Credentials] = None
    last_rotated: datetime = field(default_factory=utcnow)

    def is_due(self, now: datetime) -> bool:
        return now - self.last_rotated >= self.rotation_period


def generate_credentials(service_id: str) -> Credentials:
    """Simulated key issuance; a real rotator calls the service's API"""
    return Credentials(
        api_key=f"key_{secrets.token_hex(8)}",
        secret=f"secret_{secrets.token_hex(16)}",
    )


class CredentialRotator:
    """
    Keeps current and backup credentials per service and rotates them.

    ``refresh`` is the hook the recovery agent calls on authentication errors.
    """

    def __init__(
        self,
        generator: Callable[[str], Credentials] = generate_credentials,
        default_rotation_period: timedelta = timedelta(hours=24)
    ):
        self._generator = generator
        self.default_rotation_period = default_rotation_period
        self._entries: Dict[str, CredentialEntry] = {}

    def add_credentials(
        self,
        service_id: str,
        credentials: Credentials,
        rotation_period: Optional[timedelta] = None
    ):
        self._entries[service_id] = CredentialEntry(
            current=credentials,
            rotation_period=rotation_period or self.default_rotation_period
        )

    def get_credentials(self, service_id: str) -> Optional[Credentials]:
        entry = self._entries.get(service_id)
        return entry.current if entry else None

    def get_backup(self, service_id: str) -> Optional[Credentials]:
        entry = self._entries.get(service_id)
        return entry.backup if entry else None

    @property
    def services(self) -> List[str]:
        return list(self._entries)

    async def refresh(self, service_id: str) -> Credentials:
        """Issue new credentials for a service, keeping the old ones as backup"""
        entry = self._entries.get(service_id)
        if entry is None:
            raise CredentialError(f"No credentials registered for service '{service_id}'")

        new_credentials = self._generator(service_id)
        entry.backup = entry.current
        entry.current = new_credentials
        entry.last_rotated = utcnow()

        logger.info(f"Rotated credentials for {service_id}")
        return new_credentials

    async def rotate_all(self) -> List[str]:
        rotated = []
        for service_id in list(self._entries):
            try:
                await self.refresh(service_id)
                rotated.append(service_id)
            except Exception as e:
                logger.error(f"Failed to rotate credentials for {service_id}: {e}")
        return rotated

    async def rotate_due(self, now: datetime = None) -> List[str]:
        """Rotate every service whose rotation period has elapsed"""
        now = now or utcnow()
        rotated = []
        for service_id, entry in list(self._entries.items()):
            if entry.is_due(now):
                await self.refresh(service_id)
                rotated.append(service_id)
        return rotated
