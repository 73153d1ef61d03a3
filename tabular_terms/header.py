"""Header contract shared by tables and rows, and its multimap implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar, Union

from tabular_terms.terms import Multimap, Term, TermMap

V = TypeVar("V")


class Header(ABC):
    """
    Read-only view over the fields of a table or row.

    Every query is total: a header without fields answers with empty lists,
    ``None`` or ``False``, never with an error.
    """

    @abstractmethod
    def get_fields(self, field_name: Optional[str] = None) -> list[Term]:
        """
        Return the distinct fields of the header.

        With ``field_name`` given, return one term per registered occurrence
        of that name, so a label repeated in two columns yields two terms.
        """

    @abstractmethod
    def get_field(self, field_name: str) -> Optional[Term]:
        """Return the first field registered under ``field_name``, if any."""

    @abstractmethod
    def get_field_languages(self, field_name: str) -> list[Optional[str]]:
        """Languages available for ``field_name``; ``None`` stands for untagged."""

    @abstractmethod
    def get_languages(self) -> list[str]:
        ...

    @abstractmethod
    def get_field_names(self) -> list[str]:
        """Distinct field names regardless of language."""

    @abstractmethod
    def contains_field(self, field: Union[Term, str]) -> bool:
        """Test a field by exact term, or by bare name when given a string."""

    @property
    @abstractmethod
    def num_fields(self) -> int:
        """Number of distinct fields; repeated occurrences count once."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of field occurrences, duplicates included."""

    def is_empty(self) -> bool:
        return self.size == 0

    def __contains__(self, field: object) -> bool:
        if not isinstance(field, (Term, str)):
            return False
        return self.contains_field(field)

    def __len__(self) -> int:
        return self.num_fields


class FieldMapHeader(Header, Generic[V]):
    """
    A header that maps each field to one or more values of type ``V``.

    Tables keep a ``FieldMapHeader[int]`` of column positions; ASCII rows keep
    a ``FieldMapHeader`` of parsed cells. Lists handed out are copies, so
    mutating them does not change the header.
    """

    def __init__(self) -> None:
        self._field_map: TermMap[V] = TermMap()

    def put(self, field: Term, value: V) -> None:
        self._field_map.put(field, value)

    def get_values(self, field: Term) -> list[V]:
        return self._field_map.get_values(field)

    def get_value(self, field: Term) -> Optional[V]:
        return self._field_map.get_value(field)

    def get_non_null_value(self, field: Term) -> Optional[V]:
        return self._field_map.get_non_null_value(field)

    def get_values_by_name(self, field_name: str) -> Multimap[Optional[str], V]:
        return self._field_map.get_values_by_name(field_name)

    def remove(self, field: Term, value: V) -> bool:
        return self._field_map.remove(field, value)

    def remove_all(self, field: Term) -> list[V]:
        """Drop every value of ``field``; afterwards ``contains_field(field)`` is False."""
        return self._field_map.remove_all(field)

    def remove_all_by_name(self, field_name: str) -> Multimap[Optional[str], V]:
        """Drop every language variant of ``field_name`` and return what was removed."""
        return self._field_map.remove_all_by_name(field_name)

    def get_fields(self, field_name: Optional[str] = None) -> list[Term]:
        if field_name is None:
            return self._field_map.key_terms()
        variants = self._field_map.get_values_by_name(field_name)
        return [
            Term(field_name, language)
            for language, values in variants.items()
            for _ in values
        ]

    def get_field(self, field_name: str) -> Optional[Term]:
        languages = self._field_map.key_term_languages(field_name)
        if not languages:
            return None
        return Term(field_name, languages[0])

    def get_field_languages(self, field_name: str) -> list[Optional[str]]:
        return self._field_map.key_term_languages(field_name)

    def get_languages(self) -> list[str]:
        return self._field_map.languages()

    def get_field_names(self) -> list[str]:
        return self._field_map.key_term_names()

    def contains_field(self, field: Union[Term, str]) -> bool:
        if isinstance(field, str):
            return self._field_map.contains_name(field)
        return self._field_map.contains_key_term(field)

    @property
    def num_fields(self) -> int:
        return self._field_map.num_key_terms

    @property
    def size(self) -> int:
        return self._field_map.size

    def is_empty(self) -> bool:
        return self._field_map.is_empty()

    def __repr__(self) -> str:
        fields = ", ".join(str(field) for field in self.get_fields())
        return f"FieldMapHeader([{fields}])"
