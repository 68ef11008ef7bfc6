"""Datadog plugin package – log search client.

Exposes :class:`DatadogLogsClient`, the :class:`~logtail.interfaces.QueryClient`
for the Logs v2 ``events/search`` endpoint.
"""

from .client import DatadogLogsClient  # noqa: F401
