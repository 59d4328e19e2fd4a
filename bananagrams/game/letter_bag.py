import random
from typing import List, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


# Canonical 144-tile distribution used by every room and solo game
LETTER_DISTRIBUTION: Dict[str, int] = {
    "A": 13, "B": 3, "C": 3, "D": 6, "E": 18, "F": 3, "G": 4,
    "H": 3, "I": 12, "J": 2, "K": 2, "L": 5, "M": 3, "N": 8,
    "O": 11, "P": 3, "Q": 2, "R": 9, "S": 6, "T": 9, "U": 6,
    "V": 3, "W": 3, "X": 2, "Y": 3, "Z": 2
}

TOTAL_TILES: int = sum(LETTER_DISTRIBUTION.values())


def tiles_per_player(player_count: int) -> int:
    """Starting hand size for a room of ``player_count`` players."""
    if player_count <= 4:
        return 21
    if player_count <= 6:
        return 15
    return 11


class LetterBag(BaseModel):
    """
    Finite multiset of letter tiles stored as a frequency table.

    Draws pick uniformly over the remaining individual tiles (not over
    letter types), so common letters stay common as the bag empties.

    Attributes:
        counts: Remaining tiles per letter
        seed: Optional random seed for reproducibility
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    counts: Dict[str, int] = Field(default_factory=dict)
    seed: Optional[int] = None
    _rng: random.Random = None
    _remaining: int = 0

    def model_post_init(self, __context) -> None:
        """Initialize the random generator and the cached total."""
        self._rng = random.Random(self.seed)
        self.counts = {
            letter.upper(): count for letter, count in self.counts.items() if count > 0
        }
        self._remaining = sum(self.counts.values())

    @classmethod
    def full(cls, seed: Optional[int] = None) -> "LetterBag":
        """
        Factory method for a bag holding the whole distribution.

        Args:
            seed: Optional random seed for reproducibility

        Returns:
            A new LetterBag with every tile of the distribution
        """
        return cls(counts=dict(LETTER_DISTRIBUTION), seed=seed)

    @classmethod
    def empty(cls, seed: Optional[int] = None) -> "LetterBag":
        return cls(counts={}, seed=seed)

    def use_rng(self, rng: random.Random) -> None:
        """Share an existing random generator (e.g. the room's)."""
        self._rng = rng

    def remaining_count(self) -> int:
        """Total tiles left in the bag."""
        return self._remaining

    def __len__(self) -> int:
        return self._remaining

    def count(self, letter: str) -> int:
        return self.counts.get(letter.upper(), 0)

    def draw(self, n: int = 1) -> List[str]:
        """
        Remove up to ``n`` letters chosen uniformly at random.

        A partial draw never errors: if fewer than ``n`` tiles remain, all
        of them are returned and the bag is left empty.

        Args:
            n: Number of tiles wanted

        Returns:
            The drawn letters, in draw order
        """
        drawn: List[str] = []
        for _ in range(max(0, n)):
            if self._remaining == 0:
                break
            pick = self._rng.randrange(self._remaining)
            for letter in sorted(self.counts):
                count = self.counts[letter]
                if pick < count:
                    drawn.append(letter)
                    self._take(letter)
                    break
                pick -= count
        return drawn

    def return_letter(self, letter: str) -> None:
        """Put one instance of ``letter`` back in the bag."""
        letter = letter.upper()
        if len(letter) != 1 or not "A" <= letter <= "Z":
            raise ValueError(f"Not a single letter: {letter!r}")
        self.counts[letter] = self.counts.get(letter, 0) + 1
        self._remaining += 1

    def _take(self, letter: str) -> None:
        self.counts[letter] -= 1
        if self.counts[letter] == 0:
            del self.counts[letter]
        self._remaining -= 1

    def to_distribution(self) -> List[Dict]:
        """Bag contents as ``[{"letter", "count"}]`` in alphabetical order."""
        return [
            {"letter": letter, "count": self.counts[letter]}
            for letter in sorted(self.counts)
        ]
