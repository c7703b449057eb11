"""
Built-in configuration rules.

Importing this package registers every rule class with the built-in
catalogue via the ``@builtin`` decorator.
"""

from configguard.rules import spring_boot  # noqa: F401
from configguard.rules import nodejs  # noqa: F401
from configguard.rules import dotnet  # noqa: F401
from configguard.rules import general  # noqa: F401
from configguard.core.rules import get_builtin_rules

# Rules are stateless, so one shared set of instances serves every scan
BUILTIN_RULES = tuple(get_builtin_rules())

__all__ = ["BUILTIN_RULES", "get_builtin_rules"]
