"""
Attribution Scoring Service

Matches candidate click events to an estimated click time and ranks the
(campaign, creative, utm_source, utm_medium) groups they fold into.

Algorithm:
    1. Keep events whose timestamp lies in [estimated - window, estimated + window]
       (inclusive). events_found is the size of this set, before grouping.
    2. Group the kept events by exact equality of
       (campaign, creative, utm_source, utm_medium). Empty strings are values
       like any other.
    3. Per group: click_count = number of events, proximity = the smallest
       absolute distance between an event and the estimated click time.
    4. Rank by click_count desc, proximity asc, then campaign, creative,
       utm_source, utm_medium asc so identical inputs always rank identically.
    5. Label each group with a confidence bucket from its click_count.

Everything here is a pure function of its arguments: no I/O, no shared state.
The thresholds and the window come from settings so they can be tuned against
real sales without touching the algorithm.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Sequence, Tuple

from backend.models import AnalysisResult, ClickEvent, Confidence


# =============================================================================
# Constants
# =============================================================================

DEFAULT_HIGH_MIN_CLICKS: int = 3
DEFAULT_MEDIUM_MIN_CLICKS: int = 2

GroupKey = Tuple[str, str, str, str]


@dataclass
class CandidateGroup:
    """Click events sharing one attribution key, with their ranking inputs."""
    campaign: str
    creative: str
    utm_source: str
    utm_medium: str
    click_count: int
    proximity: timedelta

    def rank_key(self) -> Tuple[int, timedelta, str, str, str, str]:
        return (
            -self.click_count,
            self.proximity,
            self.campaign,
            self.creative,
            self.utm_source,
            self.utm_medium,
        )


# =============================================================================
# Confidence
# =============================================================================


def confidence_for_clicks(
    click_count: int,
    high_min_clicks: int = DEFAULT_HIGH_MIN_CLICKS,
    medium_min_clicks: int = DEFAULT_MEDIUM_MIN_CLICKS,
) -> Confidence:
    """
    Map a group's click count to its confidence label.

    With the defaults: 1 -> Low, 2 -> Medium, 3 or more -> High.
    """
    if click_count >= high_min_clicks:
        return Confidence.HIGH
    if click_count >= medium_min_clicks:
        return Confidence.MEDIUM
    return Confidence.LOW


# =============================================================================
# Matching and Grouping
# =============================================================================


def filter_window(
    estimated: datetime,
    events: Iterable[ClickEvent],
    window: timedelta,
) -> List[ClickEvent]:
    """Events within the inclusive matching window around estimated."""
    start, end = estimated - window, estimated + window
    return [event for event in events if start <= event.timestamp <= end]


def group_candidates(estimated: datetime, events: Iterable[ClickEvent]) -> List[CandidateGroup]:
    """Fold events into one CandidateGroup per attribution key (unordered)."""
    groups: Dict[GroupKey, CandidateGroup] = {}

    for event in events:
        key = (event.campaign, event.creative, event.utm_source, event.utm_medium)
        distance = abs(event.timestamp - estimated)
        group = groups.get(key)
        if group is None:
            groups[key] = CandidateGroup(*key, click_count=1, proximity=distance)
        else:
            group.click_count += 1
            group.proximity = min(group.proximity, distance)

    return list(groups.values())


def rank_groups(groups: Iterable[CandidateGroup]) -> List[CandidateGroup]:
    """Order groups best first; see the module docstring for the ordering."""
    return sorted(groups, key=CandidateGroup.rank_key)


# =============================================================================
# Scoring Entry Point
# =============================================================================


def score_candidates(
    estimated: datetime,
    events: Sequence[ClickEvent],
    window: timedelta,
    high_min_clicks: int = DEFAULT_HIGH_MIN_CLICKS,
    medium_min_clicks: int = DEFAULT_MEDIUM_MIN_CLICKS,
) -> Tuple[List[AnalysisResult], int]:
    """
    Score candidate click events against an estimated click time.

    Args:
        estimated: Estimated click timestamp. Must be comparable with the
            event timestamps (both naive or both timezone-aware).
        events: Candidate click events, typically already fetched for the window.
        window: Half-width of the matching window.
        high_min_clicks: Minimum click_count labelled High.
        medium_min_clicks: Minimum click_count labelled Medium.

    Returns:
        Tuple of (ranked AnalysisResult list, events_found). The first result,
        if any, is the top attribution. events_found counts raw events in the
        window regardless of how many groups they form.
    """
    matched = filter_window(estimated, events, window)
    ranked = rank_groups(group_candidates(estimated, matched))

    results = [
        AnalysisResult(
            campaign=group.campaign,
            creative=group.creative,
            utm_source=group.utm_source,
            utm_medium=group.utm_medium,
            confidence=confidence_for_clicks(
                group.click_count, high_min_clicks, medium_min_clicks
            ),
            click_count=group.click_count,
        )
        for group in ranked
    ]

    return results, len(matched)
