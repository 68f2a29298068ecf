"""User choices -- the declarative input of a generation run."""

from .loader import check_unknown_fields, choice_set_from_dict, dump_answers, load_answers
from .models import AppChoice, AppKind, ChoiceSet, Layout, Orm, PackageKind, Runtime

__all__ = [
    "AppChoice",
    "AppKind",
    "ChoiceSet",
    "Layout",
    "Orm",
    "PackageKind",
    "Runtime",
    "check_unknown_fields",
    "choice_set_from_dict",
    "dump_answers",
    "load_answers",
]
