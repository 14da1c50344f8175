from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.agent import Vote

_TAG_START = re.compile(r"<\s*META(?=[\s>]|$)", re.IGNORECASE)
_TAG_END = re.compile(r">")
_STANCE = re.compile(r"\bstance\s*=\s*[\"']?\s*([+-]?\d+)", re.IGNORECASE)
_PROPOSAL = re.compile(r"\bproposal\s*=\s*(?:\"([^\"]*)\"?|'([^']*)'?)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

VOTE_TAG_INSTRUCTION = (
    "Finish with one line exactly like <META stance=1 proposal=\"short proposal\"> where stance is "
    "1 (support), 0 (undecided) or -1 (oppose) and the proposal is at most eight words."
)


@dataclass(frozen=True)
class ConsensusEntry:
    cluster_size: int
    support: float
    proposal: str


@dataclass
class ProposalTally:
    key: str
    text: str
    yes: int = 0
    no: int = 0

    @property
    def total(self) -> int:
        return self.yes + self.no

    @property
    def support(self) -> float:
        return 0.0 if self.total == 0 else self.yes / self.total


def normalize_proposal(text: str) -> str:
    return _WHITESPACE.sub(" ", text.casefold()).strip()


def parse_vote(text: str) -> Tuple[str, Vote]:
    """Split a reply into its visible text and the trailing ``<META ...>`` vote.

    A missing or malformed tag yields a neutral vote; whatever part of a tag
    is present is still removed from the visible text.
    """
    starts = list(_TAG_START.finditer(text))
    if not starts:
        return text.strip(), Vote()
    start = starts[-1].start()
    end_match = _TAG_END.search(text, starts[-1].end())
    if end_match is None:
        body = text[starts[-1].end():]
        visible = text[:start]
    else:
        body = text[starts[-1].end():end_match.start()]
        visible = text[:start] + text[end_match.end():]
    visible = visible.strip()

    stance_match = _STANCE.search(body)
    if stance_match is None:
        return visible, Vote()
    stance = int(stance_match.group(1))
    if stance not in (-1, 0, 1):
        return visible, Vote()
    proposal = ""
    proposal_match = _PROPOSAL.search(body)
    if proposal_match is not None:
        raw = proposal_match.group(1) if proposal_match.group(1) is not None else proposal_match.group(2)
        proposal = _WHITESPACE.sub(" ", raw).strip()
    return visible, Vote(stance=stance, proposal=proposal)


def tally_proposals(votes: Sequence[Vote]) -> List[ProposalTally]:
    tallies: Dict[str, ProposalTally] = {}
    for vote in votes:
        key = normalize_proposal(vote.proposal)
        if not key:
            continue
        tally = tallies.get(key)
        if tally is None:
            tally = ProposalTally(key=key, text=vote.proposal)
            tallies[key] = tally
        if vote.stance > 0:
            tally.yes += 1
        elif vote.stance < 0:
            tally.no += 1
    return [tally for tally in tallies.values() if tally.total > 0]


def winning_proposal(votes: Sequence[Vote]) -> Optional[ProposalTally]:
    """First proposal, in insertion order, that reaches the highest yes count."""
    winner: Optional[ProposalTally] = None
    for tally in tally_proposals(votes):
        if winner is None or tally.yes > winner.yes:
            winner = tally
    return winner


def tally_consensus(votes: Sequence[Vote], cluster_size: int, threshold: float) -> Optional[ConsensusEntry]:
    winner = winning_proposal(votes)
    if winner is None or winner.total == 0:
        return None
    if winner.support < threshold:
        return None
    return ConsensusEntry(cluster_size=cluster_size, support=winner.support, proposal=winner.text)
