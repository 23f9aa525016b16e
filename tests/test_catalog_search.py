"""Tests for best SPU / SKU lookup."""

import pytest

from smartmatch import matcher
from smartmatch.catalog import index, search
from smartmatch.catalog.search import (
    PRIORITY_OTHER,
    PRIORITY_STANDARD,
    PRIORITY_VERSION_MATCH,
    SpuCandidate,
    exact_spu_score,
    find_best_sku,
    find_best_spu,
    keyword_bonus,
    select_best,
    spu_priority,
    token_similarity,
)
from smartmatch.extractor import ProductVersion
from smartmatch.schemas import CatalogProduct


def _skus(products, pid):
    return next(p for p in products if p.id == pid).skus


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------


class TestScoringHelpers:
    def test_exact_spu_score(self):
        v5 = ProductVersion("network", "5G", 6)
        v4 = ProductVersion("network", "4G", 5)
        assert exact_spu_score(v5, v5) == 1.0
        assert exact_spu_score(v5, v4) == 0.6
        assert exact_spu_score(None, None) == 1.0
        assert exact_spu_score(v5, None) == 0.7
        assert exact_spu_score(None, v5) == 0.95

    def test_spu_priority(self):
        assert spu_priority("vivo Y50", "vivo Y50") == PRIORITY_STANDARD
        assert spu_priority("华为 Watch GT5 蓝牙版", "华为 Watch GT5 蓝牙版") == PRIORITY_VERSION_MATCH
        assert spu_priority("华为 Watch GT5", "华为 Watch GT5 蓝牙版") == PRIORITY_OTHER
        assert spu_priority("vivo Y50", "vivo Y50 礼盒") == PRIORITY_OTHER

    def test_keyword_bonus_capped(self):
        assert keyword_bonus("vivo Y50", "vivo X200") == pytest.approx(0.05)
        assert keyword_bonus("oppo reno15 活力版", "OPPO Reno15 活力版") == pytest.approx(0.1)

    def test_token_similarity(self):
        assert token_similarity(["x", "200"], ["x", "200", "s"]) == pytest.approx(2 / 3)
        assert token_similarity([], ["x"]) == 0.0

    def test_select_best_prefers_plain_name(self):
        plain = SpuCandidate(CatalogProduct(id=1, name="vivo X200"), 1.0, PRIORITY_STANDARD)
        pro = SpuCandidate(CatalogProduct(id=2, name="vivo X200 Pro"), 1.0, PRIORITY_STANDARD)
        assert select_best([pro, plain]) is plain

    def test_select_best_prefers_priority(self):
        gift = SpuCandidate(CatalogProduct(id=1, name="vivo Y50 礼盒"), 1.0, PRIORITY_OTHER)
        plain = SpuCandidate(CatalogProduct(id=2, name="vivo Y50"), 1.0, PRIORITY_STANDARD)
        assert select_best([gift, plain]) is plain


class TestSharedKeywords:
    def test_gift_box_words_from_matcher(self):
        assert search.GIFT_BOX_WORDS is matcher.GIFT_BOX_WORDS
        assert spu_priority("vivo Y50", "vivo Y50 礼包") == PRIORITY_OTHER

    def test_watch_pattern_from_index(self):
        assert search.WATCH_RE is index.WATCH_RE


# ---------------------------------------------------------------------------
# SPU search
# ---------------------------------------------------------------------------


class TestFindBestSpu:
    def test_exact_match(self, catalog):
        result = find_best_spu("Vivo Y50 5G(8+256)白金", catalog)
        assert result.product.id == 1
        assert result.score == 1.0
        assert result.priority == PRIORITY_STANDARD

    def test_gift_box_filtered(self, catalog):
        result = find_best_spu("vivo Y50 8+256 白金", catalog)
        assert result.product.id == 1

    def test_edition_match(self, catalog):
        result = find_best_spu("OPPO Reno15 活力版 12+256 星光紫", catalog)
        assert result.product.id == 4

    def test_plain_listing_prefers_plain_spu(self, catalog):
        result = find_best_spu("OPPO Reno15 12+256 星光紫", catalog)
        assert result.product.id == 5

    def test_watch(self, catalog):
        result = find_best_spu("OPPO WatchX2mini 42mm 4G皓月银", catalog)
        assert result.product.id == 6

    def test_fuzzy_match(self, catalog):
        result = find_best_spu("vivo X200 12+512 简黑", catalog)
        assert result.product.id == 2
        assert 0.5 <= result.score < 1.0

    def test_demo_marker_removed(self, catalog):
        result = find_best_spu("演示机 vivo Y50 全网通5G 8+256 白金", catalog)
        assert result.product.id == 1

    def test_unknown_brand_in_catalog(self, catalog):
        assert find_best_spu("三星 Galaxy S24 12+256", catalog) is None

    def test_no_brand(self, catalog):
        result = find_best_spu("Y50 白金", catalog)
        assert result.product.id == 1

    def test_threshold(self, catalog):
        assert find_best_spu("vivo X200 12+512 简黑", catalog, threshold=0.95) is None


# ---------------------------------------------------------------------------
# SKU search
# ---------------------------------------------------------------------------


class TestFindBestSku:
    def test_capacity_and_color(self, products, reference):
        result = find_best_sku("vivo Y50 8GB+256GB 星夜黑", _skus(products, 1), reference)
        assert result.sku.id == "1-2"
        assert result.score == pytest.approx(1.0)

    def test_capacity_disambiguates(self, products, reference):
        result = find_best_sku("vivo Y50 8+128 白金", _skus(products, 1), reference)
        assert result.sku.id == "1-1"

    def test_watch_size(self, products, reference):
        result = find_best_sku("OPPO WatchX2mini 42mm 4G皓月银", _skus(products, 6), reference)
        assert result.sku.id == "6-0"

    def test_below_threshold(self, products, reference):
        assert find_best_sku("vivo Y50 8GB+512GB 红色", _skus(products, 1), reference) is None

    def test_no_skus(self, reference):
        assert find_best_sku("vivo Y50", [], reference) is None
