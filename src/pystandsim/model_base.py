"""
Base class for models whose coefficients are keyed by species group.

Coefficients come from a bundled cfg/ file when it is present and from
in-code FALLBACK_PARAMETERS otherwise. Either way an unknown group resolves
to DEFAULT_GROUP and the model records that it fell back.

Usage:
    class AllometricModel(ParameterizedModel):
        COEFFICIENT_FILE = 'species_groups.yaml'
        FALLBACK_PARAMETERS = {'default': {'max_increment': 0.32, ...}}
"""
from abc import ABC
from typing import Any, Dict, Mapping, Optional

from .config_loader import load_coefficient_file
from .exceptions import FileNotFoundError as StandSimFileNotFoundError
from .species import DEFAULT_GROUP


class ParameterizedModel(ABC):
    """Species-group coefficient lookup shared by the growth models.

    Subclasses set:
        COEFFICIENT_FILE: File in cfg/ holding a mapping of group -> coefficients
        COEFFICIENT_KEY: Top-level key of that mapping in the file
        FALLBACK_PARAMETERS: Coefficients by group when the file is unavailable

    Attributes:
        group_code: Group requested by the caller
        resolved_group: Group whose coefficients were loaded
        coefficients: Loaded coefficients
        used_fallback: True when DEFAULT_GROUP stood in for group_code
    """

    COEFFICIENT_FILE: Optional[str] = None
    COEFFICIENT_KEY: str = 'groups'
    FALLBACK_PARAMETERS: Dict[str, Dict[str, Any]] = {}
    DEFAULT_GROUP: str = DEFAULT_GROUP

    def __init__(self, group_code: Optional[str] = None):
        self.group_code = group_code or self.DEFAULT_GROUP
        self.resolved_group = self.group_code
        self.used_fallback = False
        self.coefficients: Dict[str, Any] = {}

        table = self._group_table()
        if not table:
            table = self.FALLBACK_PARAMETERS
        self._resolve(table)

    def _group_table(self) -> Mapping[str, Any]:
        """Group coefficients from COEFFICIENT_FILE, empty if the file is missing."""
        if self.COEFFICIENT_FILE is None:
            raise NotImplementedError(
                f"{self.__class__.__name__} must define COEFFICIENT_FILE"
            )
        try:
            data = load_coefficient_file(self.COEFFICIENT_FILE)
        except StandSimFileNotFoundError:
            return {}
        return data.get(self.COEFFICIENT_KEY) or {}

    def _resolve(self, table: Mapping[str, Any]) -> None:
        if self.group_code in table:
            self.coefficients = dict(table[self.group_code])
            return
        self.used_fallback = True
        if self.DEFAULT_GROUP in table:
            self.resolved_group = self.DEFAULT_GROUP
            self.coefficients = dict(table[self.DEFAULT_GROUP])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(group_code='{self.group_code}')"
