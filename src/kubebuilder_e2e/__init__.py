"""End-to-end test harness for the kubebuilder workflow."""

__version__ = "0.1.0"
