"""
Plugin lifecycle management.

Activates and deactivates host plugins per deployment environment.
"""

from noticeguard.plugins.compat import WooCommerceCompat
from noticeguard.plugins.configurations import DEFAULT_CONFIGURATION, PluginConfigurations
from noticeguard.plugins.host import DirectoryPluginHost, PluginHost
from noticeguard.plugins.lifecycle import PluginActivation, PluginDeactivation

__all__ = [
    "DEFAULT_CONFIGURATION",
    "DirectoryPluginHost",
    "PluginActivation",
    "PluginConfigurations",
    "PluginDeactivation",
    "PluginHost",
    "WooCommerceCompat",
]
