"""Ranked content matchers used as the last attribution tier.

Each matcher maps an annotation to the set of stable IDs its evidence points at.
Matchers only ever see a frozen :class:`ContentCorpus` built from annotations that
the mapping tiers resolved, so content evidence never feeds on earlier guesses.
"""

from __future__ import annotations

import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rosterlink.domain.errors import AmbiguousAttributionError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from rosterlink.domain.model import Annotation

MIN_SIGNATURE_TOKEN_LENGTH = 3

_WORD_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)


def normalize_text(value: str) -> str:
    """Casefold, strip accents and collapse everything but letters and digits."""

    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(_WORD_PATTERN.findall(stripped.casefold()))


def normalize_sender(value: str) -> str:
    return value.strip().casefold()


def signature_tokens(value: str) -> frozenset[str]:
    return frozenset(
        token
        for token in normalize_text(value).split()
        if len(token) >= MIN_SIGNATURE_TOKEN_LENGTH and not token.isdigit()
    )


@dataclass(frozen=True, slots=True)
class ResolvedExample:
    """An annotation whose stable ID came from the mapping tiers."""

    sender: str
    content: str
    stable_id: str


@dataclass(frozen=True, slots=True)
class ContentCorpus:
    """Evidence indexes shared read-only by all resolver workers."""

    content_ids: Mapping[tuple[str, str], frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    token_ids: Mapping[str, Mapping[str, frozenset[str]]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    display_names: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        examples: Iterable[ResolvedExample],
        *,
        display_names: Mapping[str, str],
    ) -> ContentCorpus:
        content_ids: defaultdict[tuple[str, str], set[str]] = defaultdict(set)
        token_ids: defaultdict[str, defaultdict[str, set[str]]] = defaultdict(
            lambda: defaultdict(set)
        )
        for example in examples:
            sender = normalize_sender(example.sender)
            normalized = normalize_text(example.content)
            if normalized:
                content_ids[(sender, normalized)].add(example.stable_id)
            for token in signature_tokens(example.content):
                token_ids[sender][token].add(example.stable_id)
        return cls(
            content_ids=MappingProxyType(
                {key: frozenset(value) for key, value in content_ids.items()}
            ),
            token_ids=MappingProxyType(
                {
                    sender: MappingProxyType(
                        {token: frozenset(ids) for token, ids in tokens.items()}
                    )
                    for sender, tokens in token_ids.items()
                }
            ),
            display_names=MappingProxyType(dict(display_names)),
        )

    @property
    def known_ids(self) -> frozenset[str]:
        return frozenset(self.display_names)


@runtime_checkable
class ContentMatcher(Protocol):
    name: str

    def __call__(self, annotation: Annotation, corpus: ContentCorpus) -> frozenset[str]: ...


@dataclass(frozen=True, slots=True)
class IdenticalContentMatcher:
    """Same sender already wrote the same text about exactly these employees."""

    name: str = "identical_content"

    def __call__(self, annotation: Annotation, corpus: ContentCorpus) -> frozenset[str]:
        key = (normalize_sender(annotation.sender), normalize_text(annotation.content))
        return corpus.content_ids.get(key, frozenset())


@dataclass(frozen=True, slots=True)
class DisplayNameMentionMatcher:
    """The text spells out an employee's full display name."""

    name: str = "display_name_mention"
    min_words: int = 2

    def __call__(self, annotation: Annotation, corpus: ContentCorpus) -> frozenset[str]:
        text = f" {normalize_text(annotation.content)} "
        found: set[str] = set()
        for stable_id, display_name in corpus.display_names.items():
            name = normalize_text(display_name)
            if len(name.split()) < self.min_words:
                continue
            if f" {name} " in text:
                found.add(stable_id)
        return frozenset(found)


@dataclass(frozen=True, slots=True)
class SignatureTokenMatcher:
    """Words that, for this sender, have only ever appeared about one employee."""

    name: str = "signature_tokens"

    def __call__(self, annotation: Annotation, corpus: ContentCorpus) -> frozenset[str]:
        tokens = corpus.token_ids.get(normalize_sender(annotation.sender))
        if not tokens:
            return frozenset()
        found: set[str] = set()
        for token in signature_tokens(annotation.content):
            ids = tokens.get(token)
            if ids is not None and len(ids) == 1:
                found.update(ids)
        return frozenset(found)


DEFAULT_MATCHERS: tuple[ContentMatcher, ...] = (
    IdenticalContentMatcher(),
    DisplayNameMentionMatcher(),
    SignatureTokenMatcher(),
)


def converge(
    annotation: Annotation,
    corpus: ContentCorpus,
    matchers: Sequence[ContentMatcher] = DEFAULT_MATCHERS,
) -> tuple[str, str]:
    """Intersect matcher results in rank order until one stable ID remains.

    Returns ``(stable_id, matcher_name)``. Raises ``AmbiguousAttributionError`` when
    no matcher fires, when the matchers contradict each other, or when the pool
    never narrows to a single employee.
    """

    known = corpus.known_ids
    pool: frozenset[str] | None = None
    for matcher in matchers:
        found = matcher(annotation, corpus) & known
        if not found:
            continue
        narrowed = found if pool is None else pool & found
        if not narrowed:
            raise AmbiguousAttributionError(
                f"{matcher.name} contradicts earlier content evidence",
                sorted(pool | found) if pool is not None else sorted(found),
            )
        pool = narrowed
        if len(pool) == 1:
            return next(iter(pool)), matcher.name
    if pool is None:
        raise AmbiguousAttributionError("no content matcher produced a candidate")
    raise AmbiguousAttributionError("content evidence matches several employees", sorted(pool))
