"""Analysis error taxonomy.

Every failure raised inside the engine derives from ``AnalysisError`` (a
``ValueError``), so callers can surface ``kind`` and the message without
leaking internal state.
"""


class AnalysisError(ValueError):
    """Base class for all engine failures."""

    kind = "analysis_error"


class IndicatorError(AnalysisError):
    """Non-finite or malformed values met mid-computation."""

    kind = "indicator_error"


class InsufficientDataError(IndicatorError):
    """Fewer candles than a computation needs."""

    kind = "insufficient_data"


class ConfigurationError(AnalysisError):
    """Invalid period, lookback, timeframe or environment setting."""

    kind = "configuration_error"
