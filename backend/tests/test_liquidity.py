"""Tests for liquidity aggregation, clustering and POI extraction."""

import pytest

from signal_core.errors import EmptyLiquidityError
from signal_core.liquidity import (
    aggregate_levels,
    apply_moderate_filter,
    build_side_clusters,
    cluster_levels,
    cluster_size,
    dominance,
    extract_poi,
    top_cluster_as_pain,
)
from signal_core.models import LiquidityCluster, PointsOfInterest, PriceLevel


def make_cluster(low: float, notional: float, size: float = 10.0) -> LiquidityCluster:
    """Helper to build a cluster."""
    return LiquidityCluster(low=low, high=low + size, notional_usd=notional, level_count=1)


def make_poi(total: float) -> PointsOfInterest:
    return PointsOfInterest(total_notional=total, target_notional=total * 0.9)


class TestAggregateLevels:
    """Tests for raw level aggregation."""

    def test_notional_is_price_times_size(self):
        levels = aggregate_levels([["100.0", "2"], [50, 1.5]])

        assert levels == [
            PriceLevel(price=100.0, notional_usd=200.0),
            PriceLevel(price=50.0, notional_usd=75.0),
        ]

    def test_duplicate_prices_are_merged(self):
        levels = aggregate_levels([[100, 1], [100, 2], [99, 1]])

        assert len(levels) == 2
        assert levels[0].notional_usd == pytest.approx(300.0)

    def test_invalid_entries_dropped(self):
        levels = aggregate_levels([
            ["abc", "1"],
            [100, 0],
            [-5, 1],
            [100, "nan"],
            [101],
            None,
            [102, 1],
        ])

        assert [lvl.price for lvl in levels] == [102.0]

    def test_extra_fields_ignored(self):
        """Level 3 books carry an order id after price and size."""
        levels = aggregate_levels([["100", "1", "order-id"]])
        assert levels[0].notional_usd == pytest.approx(100.0)


class TestClustering:
    """Tests for bucket clustering."""

    def test_cluster_size_minimum(self):
        assert cluster_size(0.5) == 1.0
        assert cluster_size(100.0) == 50.0
        assert cluster_size(100.0, multiplier=0.25) == 25.0

    def test_levels_bucketed_and_sorted(self):
        levels = [
            PriceLevel(101.0, 10.0),
            PriceLevel(105.0, 20.0),
            PriceLevel(115.0, 50.0),
        ]

        clusters = cluster_levels(levels, 10.0)

        assert len(clusters) == 2
        assert clusters[0].low == 110.0
        assert clusters[0].notional_usd == 50.0
        assert clusters[1].low == 100.0
        assert clusters[1].high == 110.0
        assert clusters[1].notional_usd == 30.0
        assert clusters[1].level_count == 2

    def test_bucket_boundary_is_half_open(self):
        clusters = cluster_levels([PriceLevel(110.0, 1.0)], 10.0)
        assert clusters[0].low == 110.0

    def test_empty_levels(self):
        assert cluster_levels([], 10.0) == []


class TestModerateFilter:
    """Tests for strength/distance filtering."""

    def test_weak_clusters_removed(self):
        clusters = [make_cluster(95, 1000.0), make_cluster(85, 20.0)]

        result = apply_moderate_filter(clusters, atr_value=10.0, price=100.0, min_strength=0.03)

        assert result == [clusters[0]]

    def test_distant_clusters_removed(self):
        # Reach = 10 * 6 = 60; mid of 200-210 is 105 away
        clusters = [make_cluster(95, 1000.0), make_cluster(200, 900.0)]

        result = apply_moderate_filter(clusters, atr_value=10.0, price=100.0)

        assert result == [clusters[0]]

    def test_order_preserved(self):
        clusters = [make_cluster(95, 1000.0), make_cluster(85, 500.0), make_cluster(105, 800.0)]
        result = apply_moderate_filter(clusters, atr_value=10.0, price=100.0)
        assert result == clusters

    def test_empty_input(self):
        assert apply_moderate_filter([], 10.0, 100.0) == []


class TestExtractPOI:
    """Tests for POI coverage extraction."""

    def test_stops_once_coverage_reached(self):
        clusters = [make_cluster(0, 10.0), make_cluster(10, 60.0), make_cluster(20, 30.0)]

        poi = extract_poi(clusters, coverage=0.85)

        assert poi.total_notional == 100.0
        assert [c.notional_usd for c in poi.clusters] == [60.0, 30.0]
        assert poi.covered_notional >= poi.target_notional

    def test_full_coverage_takes_everything(self):
        clusters = [make_cluster(0, 10.0), make_cluster(10, 60.0), make_cluster(20, 30.0)]
        poi = extract_poi(clusters, coverage=1.0)
        assert len(poi.clusters) == 3

    def test_lower_coverage_never_returns_more_clusters(self):
        clusters = [make_cluster(i * 10, float(n)) for i, n in enumerate([5, 40, 15, 25, 10, 5])]

        counts = [len(extract_poi(clusters, cov).clusters) for cov in (1.0, 0.9, 0.7, 0.5, 0.2)]

        assert counts == sorted(counts, reverse=True)
        for cov in (1.0, 0.9, 0.7, 0.5, 0.2):
            poi = extract_poi(clusters, cov)
            assert poi.covered_notional >= cov * poi.total_notional - 1e-9

    def test_empty_clusters(self):
        poi = extract_poi([], 0.9)
        assert poi.total_notional == 0
        assert poi.clusters == []


class TestBuildSideClusters:
    """Tests for the per-side cluster pipeline."""

    def test_empty_side_raises(self):
        with pytest.raises(EmptyLiquidityError, match="bid"):
            build_side_clusters([], 1.0, 2.0, 100.0, "bid")

    def test_all_filtered_raises(self):
        levels = [PriceLevel(500.0, 1000.0)]
        with pytest.raises(EmptyLiquidityError, match="ask"):
            build_side_clusters(levels, 1.0, 2.0, 100.0, "ask")

    def test_optional_side_returns_empty(self):
        assert build_side_clusters([], 1.0, 2.0, 100.0, "bid", required=False) == []

    def test_returns_filtered_clusters(self):
        levels = [PriceLevel(99.0, 500.0), PriceLevel(98.2, 300.0), PriceLevel(20.0, 900.0)]

        clusters = build_side_clusters(levels, 1.0, 2.0, 100.0, "bid")

        assert [c.low for c in clusters] == [99.0, 98.0]


class TestDominance:
    """Tests for buy/sell dominance."""

    def test_split(self):
        buy, sell = dominance(make_poi(300.0), make_poi(100.0))
        assert buy == pytest.approx(75.0)
        assert sell == pytest.approx(25.0)

    def test_empty_books_are_balanced(self):
        assert dominance(make_poi(0.0), make_poi(0.0)) == (50.0, 50.0)


class TestTopClusterAsPain:
    """Tests for the max-pain fallback zone."""

    def test_uses_strongest_cluster(self):
        clusters = [make_cluster(90, 100.0), make_cluster(80, 500.0)]

        zone = top_cluster_as_pain(clusters, price=100.0)

        assert zone.price == 85.0
        assert zone.accumulated_notional == 500.0
        assert zone.distance_from_price == 15.0
        assert zone.source == "max_pain"

    def test_mid_rounds_half_up(self):
        zone = top_cluster_as_pain([make_cluster(90, 1.0, size=1.0)], price=100.0)
        assert zone.price == 91.0

    def test_no_clusters(self):
        assert top_cluster_as_pain([], 100.0) is None
