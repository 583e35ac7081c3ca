"""
Question identity resolution across submissions.

Stored answers do not carry a stable question id across form edits: older
submissions may lack the id, or a rebuilt form may have issued new ids for
the same question. Each answer is matched to a series by trying an ordered
list of candidate keys, first match wins:

    1. question_id     exact id
    2. question_text   exact (trimmed) wording
    3. alias           normalised wording captured when the series was first seen
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple
import logging

from schemas import QuestionAnswer

logger = logging.getLogger(__name__)


def _id_key(answer: QuestionAnswer) -> Optional[str]:
    return answer.question_id.strip() if answer.question_id else None


def _text_key(answer: QuestionAnswer) -> Optional[str]:
    return answer.question_text.strip() if answer.question_text else None


def normalize_question_text(text: str) -> str:
    """Lowercase, collapse whitespace, drop punctuation."""
    text = re.sub(r"[^\w\s]", "", text.casefold())
    return re.sub(r"\s+", " ", text).strip()


def _alias_key(answer: QuestionAnswer) -> Optional[str]:
    if not answer.question_text:
        return None
    return normalize_question_text(answer.question_text) or None


@dataclass(frozen=True)
class IdentityLookup:
    name: str
    key: Callable[[QuestionAnswer], Optional[str]]
    # Aliases are captured once; ids and texts are learnt on every observation
    learn_on_match: bool = True


IDENTITY_CHAIN: Tuple[IdentityLookup, ...] = (
    IdentityLookup("question_id", _id_key),
    IdentityLookup("question_text", _text_key),
    IdentityLookup("alias", _alias_key, learn_on_match=False),
)


@dataclass
class Resolution:
    identity: str
    matched_by: Optional[str]      # Lookup name, None for a newly created identity


@dataclass
class QuestionIdentityIndex:
    """Incrementally built index from candidate keys to series identities."""
    chain: Tuple[IdentityLookup, ...] = IDENTITY_CHAIN
    _indexes: Dict[str, Dict[str, str]] = field(default_factory=dict)
    identities: List[str] = field(default_factory=list)

    def __post_init__(self):
        for lookup in self.chain:
            self._indexes.setdefault(lookup.name, {})

    def resolve(self, answer: QuestionAnswer, exclude: Iterable[str] = ()) -> Optional[Resolution]:
        """Find an existing identity for the answer without learning anything."""
        excluded = set(exclude)
        for lookup in self.chain:
            key = lookup.key(answer)
            if not key:
                continue
            identity = self._indexes[lookup.name].get(key)
            if identity is not None and identity not in excluded:
                return Resolution(identity=identity, matched_by=lookup.name)
        return None

    def observe(self, answer: QuestionAnswer, exclude: Iterable[str] = ()) -> Optional[Resolution]:
        """
        Resolve the answer, creating a new identity when nothing matches.

        Returns None for answers with neither id nor text: they cannot be
        lined up with anything.
        """
        resolution = self.resolve(answer, exclude)
        if resolution is None:
            identity = self._new_identity(answer)
            if identity is None:
                return None
            resolution = Resolution(identity=identity, matched_by=None)
            self.identities.append(identity)
            for lookup in self.chain:
                self._learn(lookup, answer, identity)
            return resolution

        for lookup in self.chain:
            if lookup.learn_on_match:
                self._learn(lookup, answer, resolution.identity)
        logger.debug(f"Answer {answer.question_id or answer.question_text!r} matched "
                     f"{resolution.identity!r} by {resolution.matched_by}")
        return resolution

    def _learn(self, lookup: IdentityLookup, answer: QuestionAnswer, identity: str) -> None:
        key = lookup.key(answer)
        if key:
            self._indexes[lookup.name].setdefault(key, identity)

    def _new_identity(self, answer: QuestionAnswer) -> Optional[str]:
        text = _alias_key(answer) or _text_key(answer)
        base = _id_key(answer) or (f"text:{text}" if text else None)
        if base is None:
            return None
        identity, suffix = base, 2
        taken: Set[str] = set(self.identities)
        while identity in taken:
            identity = f"{base}#{suffix}"
            suffix += 1
        return identity
