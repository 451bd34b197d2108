"""
Signals Module
==============

Signal processing on the decoded telemetry stream.
"""

from mavlink_reader.signals.frequency import FrequencyMonitor

__all__ = ["FrequencyMonitor"]
