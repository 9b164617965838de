"""
Runtime core for metrics-reporting plugins.

A plugin samples host statistics on the cadence requested by the
monitoring daemon and publishes each sample through a versioned
protocol file that the daemon reads.
"""

from .const import APP_VERSION as __version__

__all__ = ["__version__"]
