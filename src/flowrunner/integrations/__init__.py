"""External system integrations"""

from .effects import EffectHandler, SimulatedEffectHandler
from .credentials import CredentialRotator, Credentials, generate_credentials
from .webhooks import WebhookManager, Webhook

__all__ = [
    "EffectHandler",
    "SimulatedEffectHandler",
    "CredentialRotator",
    "Credentials",
    "generate_credentials",
    "WebhookManager",
    "Webhook"
]
