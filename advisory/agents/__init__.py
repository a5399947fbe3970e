from .orchestrator import AdvisoryOrchestrator

__all__ = ["AdvisoryOrchestrator"]
