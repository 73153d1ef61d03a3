"""Multilingual field identifiers and the multimaps that index them.

A ``Term`` names a field and optionally tags it with a language. A
``TermMap`` stores any number of values per term and can also be scanned by
bare field name, which returns every language variant at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Hashable, Iterator, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

LANGUAGE_SEPARATOR = "@"


@dataclass(frozen=True)
class Term:
    """A field name with an optional language tag."""

    name: str
    language: Optional[str] = None

    @classmethod
    def parse(cls, text: str, separator: str = LANGUAGE_SEPARATOR) -> "Term":
        """Build a term from ``"name"`` or ``"name@lang"``."""
        name, sep, language = text.rpartition(separator)
        if not sep or not name:
            return cls(text)
        return cls(name, language or None)

    def __str__(self) -> str:
        if self.language is None:
            return self.name
        return f"{self.name}{LANGUAGE_SEPARATOR}{self.language}"


class Multimap(Generic[K, V]):
    """Ordered association of one key to a list of values."""

    def __init__(self) -> None:
        self._entries: dict[K, list[V]] = {}

    def put(self, key: K, value: V) -> None:
        self._entries.setdefault(key, []).append(value)

    def get(self, key: K) -> Optional[V]:
        values = self._entries.get(key)
        return values[0] if values else None

    def get_all(self, key: K) -> list[V]:
        return list(self._entries.get(key, ()))

    def remove(self, key: K, value: V) -> bool:
        values = self._entries.get(key)
        if not values or value not in values:
            return False
        values.remove(value)
        if not values:
            del self._entries[key]
        return True

    def remove_all(self, key: K) -> list[V]:
        return self._entries.pop(key, [])

    def keys(self) -> list[K]:
        return list(self._entries)

    def items(self) -> Iterator[tuple[K, list[V]]]:
        for key, values in self._entries.items():
            yield key, list(values)

    def values(self) -> list[V]:
        return [value for values in self._entries.values() for value in values]

    @property
    def size(self) -> int:
        """Total number of values across all keys."""
        return sum(len(values) for values in self._entries.values())

    def is_empty(self) -> bool:
        return not self._entries

    def copy(self) -> "Multimap[K, V]":
        clone: Multimap[K, V] = Multimap()
        for key, values in self._entries.items():
            clone._entries[key] = list(values)
        return clone

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Multimap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"Multimap({self._entries!r})"


class TermMap(Generic[V]):
    """
    Maps ``Term`` keys to lists of values.

    Entries are grouped by bare field name first and by language second, so
    a lookup by name returns every language variant in the order the
    languages were first inserted.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, Multimap[Optional[str], V]] = {}

    def put(self, term: Term, value: V) -> None:
        self._by_name.setdefault(term.name, Multimap()).put(term.language, value)

    def get_values(self, term: Term) -> list[V]:
        languages = self._by_name.get(term.name)
        if languages is None:
            return []
        return languages.get_all(term.language)

    def get_value(self, term: Term) -> Optional[V]:
        languages = self._by_name.get(term.name)
        if languages is None:
            return None
        return languages.get(term.language)

    def get_non_null_value(self, term: Term) -> Optional[V]:
        for value in self.get_values(term):
            if value is not None:
                return value
        return None

    def get_values_by_name(self, field_name: str) -> Multimap[Optional[str], V]:
        languages = self._by_name.get(field_name)
        if languages is None:
            return Multimap()
        return languages.copy()

    def remove(self, term: Term, value: V) -> bool:
        languages = self._by_name.get(term.name)
        if languages is None:
            return False
        changed = languages.remove(term.language, value)
        if languages.is_empty():
            del self._by_name[term.name]
        return changed

    def remove_all(self, term: Term) -> list[V]:
        languages = self._by_name.get(term.name)
        if languages is None:
            return []
        removed = languages.remove_all(term.language)
        if languages.is_empty():
            del self._by_name[term.name]
        return removed

    def remove_all_by_name(self, field_name: str) -> Multimap[Optional[str], V]:
        return self._by_name.pop(field_name, None) or Multimap()

    def key_terms(self) -> list[Term]:
        return [
            Term(name, language)
            for name, languages in self._by_name.items()
            for language in languages
        ]

    def key_term_names(self) -> list[str]:
        return list(self._by_name)

    def key_term_languages(self, field_name: str) -> list[Optional[str]]:
        languages = self._by_name.get(field_name)
        if languages is None:
            return []
        return languages.keys()

    def languages(self) -> list[str]:
        """Distinct non-null languages across every field, in first-seen order."""
        seen: dict[str, None] = {}
        for languages in self._by_name.values():
            for language in languages:
                if language is not None:
                    seen.setdefault(language, None)
        return list(seen)

    def contains_key_term(self, term: Term) -> bool:
        languages = self._by_name.get(term.name)
        return languages is not None and term.language in languages

    def contains_name(self, field_name: str) -> bool:
        return field_name in self._by_name

    @property
    def num_key_terms(self) -> int:
        return sum(len(languages) for languages in self._by_name.values())

    @property
    def size(self) -> int:
        return sum(languages.size for languages in self._by_name.values())

    def is_empty(self) -> bool:
        return not self._by_name
