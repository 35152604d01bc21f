# statlab/models/__init__.py
from .budget import DfBudgetPolicy, effective_sample_size
from .fitting import FittedModel, fit_model
from .registry import FamilySpec, get_family, infer_family_from_outcome, list_families
from .spec import Family, ModelSpec
from .survival import KaplanMeierFit, fit_kaplan_meier

__all__ = [
    "DfBudgetPolicy",
    "Family",
    "FamilySpec",
    "FittedModel",
    "KaplanMeierFit",
    "ModelSpec",
    "effective_sample_size",
    "fit_kaplan_meier",
    "fit_model",
    "get_family",
    "infer_family_from_outcome",
    "list_families",
]
