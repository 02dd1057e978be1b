# src/scalesim/reporters/base_reporter.py
"""
Defines the abstract base class for all reporters.
"""
from abc import ABC, abstractmethod

from ..models.recommendation import ScaleDownReport, ScaleUpReport


class BaseReporter(ABC):
    """
    Abstract Base Class for all reporters.
    """

    @abstractmethod
    def report_scale_up(self, report: ScaleUpReport):
        """
        Presents the rounds and the final recommendation of a scale-up run.
        """
        pass

    @abstractmethod
    def report_scale_down(self, report: ScaleDownReport):
        pass
