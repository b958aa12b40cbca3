"""Query-time content filtering and popularity re-ranking.

Both run on read, not on ingestion: changing the banned terms or the
transforms takes effect on the next query without touching stored rows.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from hypeseeker.config.schemas import RankingConfig, TransformKind
from hypeseeker.config.schemas.app import DEFAULT_BANNED_SUBSTRINGS
from hypeseeker.store.models import Post


@dataclass(frozen=True)
class ContentPolicy:
    """Decides whether a stored post may be shown.

    Attributes:
        banned_substrings: Lowercase substrings matched against name and description.
        banned_combinations: Term groups; a post is hidden when its name
            contains every term of one group.
    """

    banned_substrings: tuple[str, ...] = DEFAULT_BANNED_SUBSTRINGS
    banned_combinations: tuple[tuple[str, ...], ...] = (("stake", "predict"),)

    @classmethod
    def from_config(cls, config: RankingConfig) -> "ContentPolicy":
        """Build a policy from the ranking section of the app config."""
        return cls(
            banned_substrings=tuple(s.lower() for s in config.banned_substrings if s),
            banned_combinations=tuple(
                tuple(term.lower() for term in combo if term)
                for combo in config.banned_combinations
                if combo
            ),
        )

    def is_valid(self, post: Post) -> bool:
        """Return False when the post must be hidden."""
        if not post.username.strip():
            return False

        name = post.name.lower()
        description = post.description.lower()
        for banned in self.banned_substrings:
            if banned in name or banned in description:
                return False

        for combo in self.banned_combinations:
            if combo and all(term in name for term in combo):
                return False

        return True

    def filter(self, posts: Iterable[Post]) -> list[Post]:
        """Keep only valid posts, preserving order."""
        return [post for post in posts if self.is_valid(post)]


@dataclass(frozen=True)
class SourceTransform:
    """Popularity transform for one source."""

    kind: TransformKind = TransformKind.IDENTITY
    coefficient: float = 1.0

    def apply(self, stars: int) -> float:
        value = float(max(stars, 0))
        if self.kind is TransformKind.LINEAR:
            return value * self.coefficient
        if self.kind is TransformKind.POWER:
            return value**self.coefficient
        return value


def _default_transforms() -> dict[str, SourceTransform]:
    return {
        "reddit": SourceTransform(TransformKind.LINEAR, 0.3),
        "replicate": SourceTransform(TransformKind.POWER, 0.6),
    }


@dataclass(frozen=True)
class PopularityRanker:
    """Normalizes popularity across sources and boosts relevant posts.

    Raw counts are not comparable: a Reddit score runs much hotter than
    GitHub stars, and Replicate run counts span several orders of magnitude.
    Each source gets its own transform; sources without one use raw stars.
    """

    transforms: dict[str, SourceTransform] = field(default_factory=_default_transforms)
    relevance_boost: float = 100.0

    @classmethod
    def from_config(cls, config: RankingConfig) -> "PopularityRanker":
        """Build a ranker from the ranking section of the app config."""
        return cls(
            transforms={
                source.lower(): SourceTransform(t.kind, t.coefficient)
                for source, t in config.transforms.items()
            },
            relevance_boost=config.relevance_boost,
        )

    def popularity(self, post: Post) -> float:
        """Source-normalized popularity of a post."""
        transform = self.transforms.get(post.source, SourceTransform())
        return transform.apply(post.stars)

    def rank_score(self, post: Post) -> float:
        """Popularity plus the relevance boost when the post is scored."""
        score = self.popularity(post)
        if post.relevance_score is not None:
            score += post.relevance_score * self.relevance_boost
        return score

    def rank(self, posts: Sequence[Post]) -> list[Post]:
        """Sort posts by rank score, highest first.

        The sort is stable, so ties keep the incoming order.
        """
        return sorted(posts, key=self.rank_score, reverse=True)
