"""Statement import wizard."""

from .orchestrator import ImportResult, ImportWizard, WizardStep

__all__ = ["ImportResult", "ImportWizard", "WizardStep"]
