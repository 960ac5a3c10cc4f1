from .record import PerformanceRecord
from .stat_pack import PeriodStatPack

__all__ = ["PerformanceRecord", "PeriodStatPack"]
