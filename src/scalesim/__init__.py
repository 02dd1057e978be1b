"""scalesim: trial-based scaling recommendations for Kubernetes clusters."""

__version__ = "0.1.0"
