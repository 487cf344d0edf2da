from .adapters import WizardIntakeAdapter
from .types import InternalIntake

__all__ = ['WizardIntakeAdapter', 'InternalIntake']
