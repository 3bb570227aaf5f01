"""Price series analytics -- trailing moving average enrichment."""

from tracker.signals.moving_average import (
    MovingAverageProcessor,
    TrailingWindow,
    average_available,
)

__all__ = ["MovingAverageProcessor", "TrailingWindow", "average_available"]
