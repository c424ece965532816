"""
Opaque request parameters handed to processing actions.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Union


class ActionRequest:
    """Named string parameters, each possibly multi-valued, in submission order."""

    def __init__(self, parameters: Optional[Mapping[str, Union[str, Iterable[str]]]] = None):
        self._params: Dict[str, List[str]] = {}
        for name, values in (parameters or {}).items():
            if isinstance(values, str):
                self._params[name] = [values]
            else:
                self._params[name] = [str(v) for v in values]

    def get_parameter(self, name: str) -> Optional[str]:
        values = self._params.get(name)
        return values[0] if values else None

    def get_parameter_values(self, name: str) -> List[str]:
        return list(self._params.get(name, []))

    def parameter_names(self) -> List[str]:
        return list(self._params)

    def get_submit_button(self, default: str) -> str:
        """Name of the first parameter starting with 'submit', or the default."""
        for name in self._params:
            if name.startswith("submit"):
                return name
        return default

    def __contains__(self, name: str) -> bool:
        return name in self._params

    def __repr__(self) -> str:
        return f"ActionRequest({self._params!r})"
