"""Pitch-class names and their semitone offsets from C."""

from types import MappingProxyType

# Solfege names and their letter aliases, semitones above C in the same octave
NOTE_SEMITONES = {
    "do": 0, "re": 2, "mi": 4, "fa": 5, "sol": 7, "la": 9, "si": 11,
    "c": 0, "d": 2, "e": 4, "f": 5, "g": 7, "a": 9, "b": 11,
}

SILENCE_NAMES = ("z",)


class PitchTable:
    """Read-only lookup from pitch-class name to semitone offset.

    Keys are matched case-insensitively as prefixes of the input, longest key
    first (ties broken alphabetically), so a longer alias such as ``sol`` is
    never shadowed by a shorter one that happens to be its prefix.
    """

    def __init__(
        self,
        semitones: dict[str, int] | None = None,
        silence: tuple[str, ...] = SILENCE_NAMES,
    ):
        semitones = NOTE_SEMITONES if semitones is None else semitones
        table: dict[str, int | None] = {}

        for name, offset in semitones.items():
            key = _check_name(name)
            if isinstance(offset, bool) or not isinstance(offset, int) or not 0 <= offset <= 11:
                raise ValueError(f"Semitone offset for {name!r} must be an int in [0, 11], got {offset!r}")
            table[key] = offset

        for name in silence:
            table[_check_name(name)] = None

        self._table = MappingProxyType(table)
        self._order = tuple(sorted(table, key=lambda k: (-len(k), k)))

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._table

    def __len__(self) -> int:
        return len(self._table)

    @property
    def names(self) -> tuple[str, ...]:
        """All known names in matching order."""
        return self._order

    def match(self, text: str) -> tuple[str, int, bool] | None:
        """Find the pitch name that prefixes *text*.

        Returns (matched_key, semitone_offset, is_silence), or None when no key
        matches. Silence keys report an offset of 0.
        """
        folded = text.lower()
        for key in self._order:
            if folded.startswith(key):
                offset = self._table[key]
                if offset is None:
                    return key, 0, True
                return key, offset, False
        return None

    def resolve(self, name: str) -> tuple[int, bool] | None:
        """Resolve *name* to (semitone_offset, is_silence) using prefix matching."""
        found = self.match(name)
        if found is None:
            return None
        _, offset, is_silence = found
        return offset, is_silence


def _check_name(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise ValueError(f"Pitch names must be non-empty strings, got {name!r}")
    return name.lower()


DEFAULT_PITCHES = PitchTable()
