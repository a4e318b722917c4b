"""
Bound parameters for one query build.
"""

import re
from collections import defaultdict
from typing import Any, Dict

_NON_WORD = re.compile(r'\W')


class ParameterBag:
    """
    Placeholder allocator plus the values bound to each placeholder.

    Every placeholder is ``:<base>_<n>``; ``<n>`` counts up per base, so the
    same field used twice in one build gets ``:age_1`` and ``:age_2``.

    Examples:
        >>> bag = ParameterBag()
        >>> bag.bind('users.id', 7)
        ':users_id_1'
        >>> bag.bind('users.id', 8)
        ':users_id_2'
        >>> bag.params
        {'users_id_1': 7, 'users_id_2': 8}
    """

    def __init__(self):
        self._counters: Dict[str, int] = defaultdict(int)
        self._params: Dict[str, Any] = {}

    @staticmethod
    def sanitize(base: str) -> str:
        return _NON_WORD.sub('_', str(base)) or 'param'

    def allocate(self, base: str) -> str:
        """Reserve a fresh placeholder name (without the leading colon)."""
        base = self.sanitize(base)
        while True:
            self._counters[base] += 1
            name = f"{base}_{self._counters[base]}"
            # a base like 'a_1' can collide with 'a' + counter; skip taken names
            if name not in self._params:
                return name

    def bind(self, base: str, value: Any) -> str:
        """Allocate a placeholder for ``value`` and return it with its colon."""
        name = self.allocate(base)
        self._params[name] = value
        return f":{name}"

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __contains__(self, name: str) -> bool:
        return name.lstrip(':') in self._params
