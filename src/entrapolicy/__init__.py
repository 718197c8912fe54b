"""
Entra policy engine.

Resolves which directory-managed policies (configuration, group policy
and compliance) apply to a Linux user or device, and normalizes their
settings for enforcement handlers.
"""

__version__ = "0.1.0"

from entrapolicy.config import PolicyConfig, load_config

__all__ = ["PolicyConfig", "load_config", "__version__"]
