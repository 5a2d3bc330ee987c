"""
This module contains the label classifier plugin for the PR analytics pipeline.

Two label families are derived for every pull request:

- refined labels: categories matched on the raw GitHub labels only
- custom labels: refined labels plus spec-type specific title rules

Both are multi-label and never empty, falling back to "Unlabeled" and "Misc".
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from config import logger
from analyzers.models import MISC, UNLABELED, ClassificationResult
from miners.models import PullRequestRecord, SpecType

# Ordered (substring patterns, category) table, matched on lower-cased labels.
REFINED_LABEL_RULES: List[Tuple[Tuple[str, ...], str]] = [
    # Review-related labels
    (("a-review", "author review"), "Author Review"),
    (("e-review", "editor review"), "Editor Review"),
    (("discuss",), "Discuss"),
    (("on-hold", "on hold"), "On Hold"),
    (("final-call", "final call"), "Final Call"),
    # Status labels
    (("draft",), "Draft"),
    (("review",), "Review"),
    (("last-call", "last call"), "Last Call"),
    (("final",), "Final"),
    (("stagnant",), "Stagnant"),
    (("withdrawn",), "Withdrawn"),
    # Category labels
    (("c-new",), "New"),
    (("c-update",), "Update"),
    (("c-status",), "Status Change"),
    # Bot labels
    (("created-by-bot", "bot"), "Created By Bot"),
    # Type labels
    (("core",), "Core"),
    (("networking",), "Networking"),
    (("interface",), "Interface"),
    (("erc",), "ERC"),
    (("meta",), "Meta"),
    (("informational",), "Informational"),
]

TYPO_PATTERN = re.compile(r"typo|spelling|grammar|punctuation", re.IGNORECASE)
STATUS_CHANGE_PATTERN = re.compile(
    r"move to|status.*change|change.*status", re.IGNORECASE
)
RIP_TYPO_PATTERN = re.compile(
    r"fix typo|fix file name|typo|grammar|punctuation", re.IGNORECASE
)
RIP_UPDATE_PATTERN = re.compile(
    r"update rip-|rename|review required|remove deprecated", re.IGNORECASE
)
RIP_NEW_PATTERN = re.compile(r"^create rip|add rip", re.IGNORECASE)

TitlePredicate = Callable[[str, Sequence[str]], bool]


@dataclass(frozen=True)
class TitleRule:
    """
    A title based labelling rule.

    Rules are evaluated in list order. A rule fires when its predicate holds
    and none of the labels in ``unless`` has been emitted so far.

    Attributes:
        label (str): Label emitted when the rule fires
        predicate (TitlePredicate): Receives the title and the raw labels
        unless (Tuple[str, ...]): Labels that suppress this rule
    """

    label: str
    predicate: TitlePredicate
    unless: Tuple[str, ...] = ()


def _proposal_rules(prefix: str) -> List[TitleRule]:
    """Title rules shared by the EIP and ERC repositories."""
    update_prefix = f"Update {prefix}-"

    def is_update(title: str) -> bool:
        return title.startswith(update_prefix)

    return [
        TitleRule(
            "Typo Fix",
            lambda title, labels: is_update(title) and bool(TYPO_PATTERN.search(title)),
        ),
        TitleRule(
            "Status Change",
            lambda title, labels: is_update(title)
            and bool(STATUS_CHANGE_PATTERN.search(title)),
            unless=("Typo Fix",),
        ),
        TitleRule(
            f"{prefix} Update",
            lambda title, labels: is_update(title),
            unless=("Status Change", "Typo Fix"),
        ),
        TitleRule("Created By Bot", lambda title, labels: "created-by-bot" in labels),
        TitleRule(
            f"New {prefix}",
            lambda title, labels: title.startswith(f"Add {prefix}") and "c-new" in labels,
        ),
    ]


TITLE_RULES: Dict[SpecType, List[TitleRule]] = {
    SpecType.EIP: _proposal_rules("EIP"),
    SpecType.ERC: _proposal_rules("ERC"),
    SpecType.RIP: [
        TitleRule("Typo Fix", lambda title, labels: bool(RIP_TYPO_PATTERN.search(title))),
        TitleRule("Update", lambda title, labels: bool(RIP_UPDATE_PATTERN.search(title))),
        TitleRule("New RIP", lambda title, labels: bool(RIP_NEW_PATTERN.search(title))),
    ],
}


def classify_refined(raw_labels: Sequence[str]) -> List[str]:
    """
    Map raw GitHub labels to refined categories.

    Args:
        raw_labels (Sequence[str]): GitHub label names

    Returns:
        List[str]: Matching categories in rule order, or ["Unlabeled"]
    """
    labels = [label.lower() for label in raw_labels]
    refined = [
        category
        for patterns, category in REFINED_LABEL_RULES
        if any(pattern in label for label in labels for pattern in patterns)
    ]
    return refined or [UNLABELED]


def classify_custom(title: str, raw_labels: Sequence[str], spec_type: SpecType) -> List[str]:
    """
    Derive custom labels from the PR title and raw labels.

    Args:
        title (str): PR title
        raw_labels (Sequence[str]): GitHub label names
        spec_type (SpecType): Repository the PR belongs to

    Returns:
        List[str]: De-duplicated labels in rule order, or ["Misc"]
    """
    spec_type = SpecType.parse(spec_type)
    title = title or ""
    raw_labels = list(raw_labels or [])

    out: List[str] = []
    refined = classify_refined(raw_labels)
    if refined != [UNLABELED]:
        out.extend(refined)

    for rule in TITLE_RULES[spec_type]:
        if any(label in out for label in rule.unless):
            continue
        if rule.predicate(title, raw_labels):
            out.append(rule.label)

    unique = list(dict.fromkeys(out))
    return unique or [MISC]


class LabelClassifierPlugin:
    """Base class for label classifier plugins."""

    def categorize(self, pr: PullRequestRecord) -> ClassificationResult:
        """Classify a single pull request."""
        raise NotImplementedError

    def categorize_all(self, prs: List[PullRequestRecord]) -> List[PullRequestRecord]:
        """Attach classification results to all the given pull requests."""
        raise NotImplementedError


class SpecLabelClassifier(LabelClassifierPlugin):
    """Rule based classifier for specification repository pull requests."""

    def categorize(self, pr: PullRequestRecord) -> ClassificationResult:
        """
        Classify a pull request from its title and labels.

        Example:
            pr.title = "Update EIP-1559: Fix typo"
            pr.raw_labels = ["c-update"]
            -> refined ["Update"], custom ["Update", "Typo Fix"]

        Args:
            pr (PullRequestRecord): Pull request to classify

        Returns:
            ClassificationResult: Refined and custom labels
        """
        return ClassificationResult(
            refined_labels=classify_refined(pr.raw_labels),
            custom_labels=classify_custom(pr.title, pr.raw_labels, pr.spec_type),
        )

    def categorize_all(self, prs: List[PullRequestRecord]) -> List[PullRequestRecord]:
        """
        Classify a batch of pull requests.

        Args:
            prs (List[PullRequestRecord]): Pull requests of one spec type

        Returns:
            List[PullRequestRecord]: Copies with refined and custom labels set
        """
        classified = []
        label_counts: Dict[str, int] = {}
        for pr in prs:
            result = self.categorize(pr)
            classified.append(pr.model_copy(update=result.model_dump()))
            for label in result.custom_labels:
                label_counts[label] = label_counts.get(label, 0) + 1

        logger.info(
            {
                "message": "Label assignment summary",
                "pull_requests": len(classified),
                "custom_labels": label_counts,
            }
        )
        return classified
