"""Camera text monitoring: stream configuration, text-region detection, keyword alarms and view geometry."""

__version__ = "0.1.0"