# threadart_app/pattern_algorithms/__init__.py
#
# Registry of pattern algorithms. Every concrete PatternAlgorithm subclass in a
# sibling module is instantiated once and registered under its module name,
# with underscores turned into dashes (greedy.py -> "greedy").

import pkgutil
import importlib
import inspect
from typing import Dict

from .base import PatternAlgorithm

ALGORITHMS: Dict[str, PatternAlgorithm] = {}


def _discover() -> None:
    for _, module_name, _ in pkgutil.iter_modules(__path__):
        if module_name == "base":
            continue
        module = importlib.import_module(f"{__name__}.{module_name}")
        for _, cls in inspect.getmembers(module, inspect.isclass):
            # only classes defined here, not ones a module merely imports
            if cls.__module__ != module.__name__:
                continue
            if issubclass(cls, PatternAlgorithm) and not inspect.isabstract(cls):
                ALGORITHMS[module_name.replace("_", "-")] = cls()


_discover()
