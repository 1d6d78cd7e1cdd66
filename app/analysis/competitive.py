"""Competitive analysis over per-keyword SERP snapshots.

Works on KeywordAnalysis objects already built from organic results;
nothing here touches the network or the database.
"""

from __future__ import annotations

import math
from datetime import datetime

from app.analysis.domains import domain_matches, normalize_domain
from app.analysis.seo_scoring import calculate_keyword_difficulty, get_ctr_by_position
from app.analysis.types import (
    CompetitiveMetrics,
    CompetitorPosition,
    CompetitorStats,
    Difficulty,
    HistoryMaturity,
    HistoryStatus,
    KeywordAnalysis,
    KeywordDifficulty,
    KeywordPotential,
    Opportunity,
    OpportunityType,
    TopCompetitor,
)

DEFAULT_SEARCH_VOLUME = 100


def build_keyword_analysis(
    keyword: str,
    organic_results: list[dict],
    target_domain: str,
    search_volume: int | None = None,
) -> KeywordAnalysis:
    """Split one keyword's organic results into the target's position and everyone else's."""
    target = normalize_domain(target_domain)
    target_position = None
    competitors: list[CompetitorPosition] = []

    for index, item in enumerate(organic_results):
        link = item.get("link") or ""
        domain = normalize_domain(link)
        if not domain:
            continue
        reported = item.get("position")
        position = reported if isinstance(reported, int) and reported > 0 else index + 1

        if domain_matches(domain, target):
            if target_position is None:
                target_position = position
            continue
        competitors.append(CompetitorPosition(domain=domain, position=position, url=link, title=item.get("title", "")))

    unique_domains = {c.domain for c in competitors}
    if len(unique_domains) <= 3:
        level = "high"
    elif len(unique_domains) <= 6:
        level = "medium"
    else:
        level = "low"

    return KeywordAnalysis(
        keyword=keyword,
        target_domain_position=target_position,
        competitor_positions=competitors,
        search_volume=search_volume,
        competition_level=level,
    )


def _best_competitor_position(keyword: KeywordAnalysis) -> int | None:
    positions = [cp.position for cp in keyword.competitor_positions]
    return min(positions) if positions else None


def calculate_competitive_metrics(
    keywords: list[KeywordAnalysis],
    competitors: list[CompetitorStats],
) -> CompetitiveMetrics:
    """Average gap to the best competitor, traffic lost to them, and who wins most often."""
    gaps: list[int] = []
    lost_traffic = 0.0
    wins: dict[str, int] = {}

    for keyword in keywords:
        mine = keyword.target_domain_position
        best = _best_competitor_position(keyword)
        if not mine or best is None or best >= mine:
            continue

        gaps.append(mine - best)
        volume = keyword.search_volume or DEFAULT_SEARCH_VOLUME
        lost_traffic += (get_ctr_by_position(best) - get_ctr_by_position(mine)) * volume / 100

        for cp in keyword.competitor_positions:
            if cp.position < mine:
                wins[cp.domain] = wins.get(cp.domain, 0) + 1

    average_gap = round(sum(gaps) / len(gaps)) if gaps else 0
    total_volume = sum(k.search_volume or DEFAULT_SEARCH_VOLUME for k in keywords)
    lost_pct = round(lost_traffic / total_volume * 100) if total_volume > 0 else 0

    stats_by_domain = {c.domain: c for c in competitors}
    top = [
        TopCompetitor(
            domain=normalize_domain(domain),
            wins_count=count,
            average_position=stats_by_domain[domain].average_position if domain in stats_by_domain else 0,
            share_of_voice=stats_by_domain[domain].share_of_voice if domain in stats_by_domain else 0,
        )
        for domain, count in wins.items()
    ]
    top.sort(key=lambda c: c.wins_count, reverse=True)

    return CompetitiveMetrics(average_position_gap=average_gap, lost_traffic_potential=lost_pct, top_competitors=top[:5])


def get_keyword_competitive_difficulty(keyword: KeywordAnalysis) -> KeywordDifficulty:
    return calculate_keyword_difficulty([cp.position for cp in keyword.competitor_positions])


def get_keyword_potential(keyword: KeywordAnalysis) -> KeywordPotential:
    """Realistic next position given the gap to the best competitor."""
    mine = keyword.target_domain_position
    best = _best_competitor_position(keyword)

    if not mine:
        if best is None:
            return KeywordPotential(None, 20, "medium", "No competitors ranking yet, open field")
        return KeywordPotential(
            None,
            min(20, best + 5),
            "high" if best <= 10 else "medium",
            "Strong opportunity to enter the ranking",
        )

    gap = mine - best if best is not None else 0
    if gap <= 2:
        return KeywordPotential(mine, max(1, mine - 1), "high", "Quick improvement opportunity")
    if gap <= 5:
        return KeywordPotential(mine, max(1, mine - math.ceil(gap / 2)), "medium", "Improvement possible with moderate effort")
    return KeywordPotential(mine, max(1, mine - math.ceil(gap / 3)), "low", "Improvement requires significant investment")


def get_competitors_ahead(keyword: KeywordAnalysis) -> list[dict]:
    """Competitors ranking above the target (or in the top 20 when the target is absent)."""
    mine = keyword.target_domain_position
    if not mine:
        ahead = [
            {"domain": normalize_domain(cp.domain), "position": cp.position, "gap": cp.position}
            for cp in keyword.competitor_positions
            if cp.position <= 20
        ]
    else:
        ahead = [
            {"domain": normalize_domain(cp.domain), "position": cp.position, "gap": mine - cp.position}
            for cp in keyword.competitor_positions
            if cp.position < mine
        ]
    return sorted(ahead, key=lambda c: c["position"])


def generate_keyword_recommendations(keyword: KeywordAnalysis) -> list[str]:
    """Up to five suggested actions for a keyword."""
    difficulty = get_keyword_competitive_difficulty(keyword)
    potential = get_keyword_potential(keyword)
    ahead = get_competitors_ahead(keyword)

    recommendations: list[str] = []
    if not potential.current_position:
        recommendations += [
            "Create content optimized for this keyword",
            "Include the keyword in the main page title",
            "Build a dedicated page for the term",
        ]
    elif potential.current_position > 10:
        recommendations += [
            "Improve on-page optimization of the existing content",
            "Use the keyword more prominently in the content",
            "Optimize the meta description and title tag",
        ]
    else:
        recommendations += [
            "Deepen the quality and coverage of the content",
            "Improve the page's user experience",
            "Add relevant internal links",
        ]

    if difficulty.difficulty == Difficulty.LOW:
        recommendations.append("Quick win: apply basic SEO improvements")
    elif difficulty.difficulty in (Difficulty.HIGH, Difficulty.VERY_HIGH):
        recommendations += [
            "Consider a link building strategy",
            "Analyse the top 3 competitors in detail",
            "Invest in high-quality, authoritative content",
        ]

    if ahead:
        top = ahead[0]
        recommendations.append(f"Study the strategy of {top['domain']} (position {top['position']})")

    return recommendations[:5]


def analyze_competitors(domains: list[str], analyses: list[KeywordAnalysis]) -> list[CompetitorStats]:
    """Per-domain presence, average position and relevance, most relevant first."""
    positions: dict[str, list[int]] = {domain: [] for domain in domains}
    for analysis in analyses:
        for cp in analysis.competitor_positions:
            if cp.domain in positions:
                positions[cp.domain].append(cp.position)

    stats = []
    for domain, found in positions.items():
        average = sum(found) / len(found) if found else 100
        share = len(found) / len(analyses) * 100 if analyses else 0
        relevance = round(len(found) * 10 + (100 - average))
        stats.append(
            CompetitorStats(
                domain=domain,
                total_keywords_found=len(found),
                average_position=round(average, 2),
                share_of_voice=round(share, 2),
                relevance_score=max(0, relevance),
            )
        )

    return sorted(stats, key=lambda s: s.relevance_score, reverse=True)


def identify_opportunities(analyses: list[KeywordAnalysis], target_domain: str) -> list[Opportunity]:
    """Keywords where the target is missing or behind the best competitor, highest priority first."""
    target = normalize_domain(target_domain)
    opportunities: list[Opportunity] = []

    for analysis in analyses:
        rivals = [cp for cp in analysis.competitor_positions if cp.domain != target]
        if not rivals:
            continue
        best = min(rivals, key=lambda cp: cp.position)
        mine = analysis.target_domain_position

        if not mine:
            opportunities.append(
                Opportunity(
                    keyword=analysis.keyword,
                    opportunity_type=OpportunityType.MISSING_KEYWORD,
                    target_position=None,
                    best_competitor_position=best.position,
                    best_competitor_domain=best.domain,
                    priority_score=100 - best.position,
                    gap_size=100,
                    recommended_action=f'Create content targeting "{analysis.keyword}" to compete with {best.domain}',
                )
            )
        elif mine > best.position and mine > 3:
            opportunities.append(
                Opportunity(
                    keyword=analysis.keyword,
                    opportunity_type=OpportunityType.LOW_POSITION,
                    target_position=mine,
                    best_competitor_position=best.position,
                    best_competitor_domain=best.domain,
                    priority_score=max(0, 50 - best.position),
                    gap_size=mine - best.position,
                    recommended_action=(
                        f'Improve content for "{analysis.keyword}" to move from position {mine} '
                        f"to compete with {best.domain} at position {best.position}"
                    ),
                )
            )

    return sorted(opportunities, key=lambda o: o.priority_score, reverse=True)


def calculate_competitiveness_score(analyses: list[KeywordAnalysis]) -> int:
    """Average step score (100/80/60/40/20) over keywords where the target ranks."""
    scores = []
    for analysis in analyses:
        position = analysis.target_domain_position
        if not position:
            continue
        if position == 1:
            scores.append(100)
        elif position <= 3:
            scores.append(80)
        elif position <= 5:
            scores.append(60)
        elif position <= 10:
            scores.append(40)
        else:
            scores.append(20)
    return round(sum(scores) / len(scores)) if scores else 0


# --- History maturity ---


def calculate_days_span(dates: list[datetime]) -> int:
    """Whole days (rounded up) between the oldest and newest data point."""
    if not dates:
        return 0
    seconds = (max(dates) - min(dates)).total_seconds()
    return math.ceil(seconds / 86400)


def get_history_maturity(data_points: int, days_span: int) -> HistoryMaturity:
    if days_span == 0 or data_points == 0:
        return HistoryMaturity(HistoryStatus.BUILDING, 0, 0, "No history available yet")
    if days_span < 7:
        unit = "day" if days_span == 1 else "days"
        return HistoryMaturity(
            HistoryStatus.BUILDING, days_span, data_points, f"Building history... {days_span} {unit} recorded"
        )
    if days_span < 30:
        return HistoryMaturity(
            HistoryStatus.CONSOLIDATING, days_span, data_points, f"Consolidated history: {days_span} days of real data"
        )
    return HistoryMaturity(
        HistoryStatus.COMPLETE, days_span, data_points, f"Complete data: {days_span}+ days of real history"
    )
