"""cattle: provisioning and genesis bootstrap for node clusters."""

__version__ = "0.1.0"
