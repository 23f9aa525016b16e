"""Tests for attribute extraction."""

from smartmatch.extractor import (
    ProductVersion,
    extract_attributes,
    extract_brand,
    extract_capacity,
    extract_color,
    extract_model,
    extract_version,
    extract_watch_band,
    extract_watch_size,
    model_core,
    split_compound_words,
)
from smartmatch.extractor import _is_simple_candidate
from smartmatch.reference import ReferenceData


# ---------------------------------------------------------------------------
# Brand
# ---------------------------------------------------------------------------


class TestExtractBrand:
    def test_case_insensitive(self):
        assert extract_brand("Vivo X200S 5G") == "vivo"

    def test_spell_maps_to_name(self):
        assert extract_brand("HUAWEI Mate 60 Pro") == "华为"

    def test_chinese_name(self):
        assert extract_brand("红米 K80 至尊版") == "红米"

    def test_unknown(self):
        assert extract_brand("某品牌 智能手机") is None

    def test_brand_not_matched_inside_word(self):
        assert extract_brand("vivoxyz") is None

    def test_catalog_brand(self, reference):
        assert extract_brand("oppo Reno15", reference) == "OPPO"


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


class TestExtractVersion:
    def test_full_network(self):
        assert extract_version("vivo Y50 全网通5G 8GB+256GB") == ProductVersion("network", "全网通5G", 10)

    def test_network_with_pro_mini_model(self):
        version = extract_version("Vivo S30 Pro mini 5G")
        assert version is not None
        assert version.type == "network"
        assert version.value == "5G"

    def test_longer_keyword_wins(self):
        assert extract_version("荣耀 X50 4G版").value == "4G版"

    def test_product_edition(self):
        assert extract_version("OPPO Reno15 活力版") == ProductVersion("product", "活力版", 2)

    def test_pro_edition(self):
        version = extract_version("华为 Mate 60 Pro版")
        assert version.type == "product"
        assert version.value == "Pro版"

    def test_bare_pro_is_not_a_version(self):
        assert extract_version("vivo X200 Pro") is None

    def test_pro_mini_model_with_separate_pro_edition(self):
        version = extract_version("vivo S30 Pro mini 标配 Pro版")
        assert version == ProductVersion("product", "Pro版", 5)

    def test_pro_mini_model_alone(self):
        assert extract_version("vivo S30 Pro mini") is None

    def test_network_not_inside_number(self):
        assert extract_version("充电头 15g") is None


# ---------------------------------------------------------------------------
# Capacity
# ---------------------------------------------------------------------------


class TestExtractCapacity:
    def test_ram_plus_storage(self):
        assert extract_capacity("8GB+256GB") == "8+256"

    def test_short_units(self):
        assert extract_capacity("12G+512G") == "12+512"

    def test_terabyte(self):
        assert extract_capacity("vivo X Fold5 16+1T") == "16+1T"

    def test_storage_only(self):
        assert extract_capacity("iPad 256GB") == "256"

    def test_largest_storage(self):
        assert extract_capacity("512GB 1TB") == "1T"

    def test_none(self):
        assert extract_capacity("vivo Y50 白金") is None


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------


class TestExtractColor:
    def test_trailing_color(self):
        assert extract_color("vivo Y50 全网通5G 8GB+256GB 白金") == "白金"

    def test_variant_color(self):
        assert extract_color("OPPO Reno15 雾松蓝") == "雾松蓝"

    def test_catalog_color_preferred(self, reference):
        assert extract_color("OPPO Reno15 星光紫色") == "星光紫色"
        assert extract_color("OPPO Reno15 星光紫色", reference) == "星光紫"

    def test_network_word_not_color(self):
        assert extract_color("vivo Y50 全网通") is None

    def test_edition_not_color(self):
        assert extract_color("OPPO Reno15 活力版") is None

    def test_no_color(self):
        assert extract_color("vivo Y50") is None


# ---------------------------------------------------------------------------
# Watch attributes
# ---------------------------------------------------------------------------


class TestWatchAttributes:
    def test_size_mm(self):
        assert extract_watch_size("oppo watch x2 mini 42mm") == "42mm"

    def test_size_inch(self):
        assert extract_watch_size("小米手环 1.5寸") == "1.5寸"

    def test_band_longest_keyword(self):
        assert extract_watch_band("华为 watch gt5 46mm 复合编织表带") == "复合编织表带"

    def test_no_band(self):
        assert extract_watch_band("华为 watch gt5 46mm") is None


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class TestExtractModel:
    def test_simple_model(self):
        assert extract_model("Vivo Y50 5G(8+256)白金") == "y50"

    def test_simple_model_with_network_and_capacity(self):
        assert extract_model("vivo Y50 全网通5G 8GB+256GB 白金", "vivo") == "y50"

    def test_fold_compound(self):
        model = extract_model("Vivo X FOLD5 5G 16+1T 青松")
        assert "fold5" in model
        assert model == "xfold5"

    def test_watch_compound(self):
        assert extract_model("OPPO WatchX2mini 42mm 4G皓月银") == "watchx2mini"

    def test_suffixed_model(self):
        assert extract_model("华为 Mate 60 Pro 12+512 雅川青") == "mate60pro"

    def test_word_and_number(self):
        assert extract_model("OPPO Reno 15 活力版") == "reno15"

    def test_word_pair(self):
        assert extract_model("荣耀 Magic Vs") == "magicvs"

    def test_word_pair_skips_chinese_words(self):
        assert extract_model("vivo 原封 未激活 8+256 白金") is None
        assert extract_model("全网通 版本") is None

    def test_word_pair_skips_filler_words(self):
        assert extract_model("荣耀 new Magic") is None
        assert extract_model("荣耀 Magic Vs 全网通 版本") == "magicvs"

    def test_simple_prefers_letter_suffix(self):
        assert extract_model("OPPO A5 A5x") == "a5x"

    def test_simple_drops_unit_tokens(self):
        assert extract_model("荣耀 X50 5800mAh") == "x50"
        assert extract_model("荣耀 X50 66W") == "x50"

    def test_brand_index_without_hit_stays_in_brand(self):
        reference = ReferenceData(model_index={
            "vivo": frozenset({"y50"}),
            "oppo": frozenset({"findx8"}),
            "": frozenset({"y50", "findx8"}),
        })
        assert extract_model("vivo Find X8", "vivo", reference) == "x8"
        assert extract_model("三星 Find X8", "三星", reference) == "findx8"

    def test_catalog_index(self, reference):
        assert extract_model("vivo X200s 全网通5G 12+512", "vivo", reference) == "x200s"

    def test_no_model(self):
        assert extract_model("白金") is None

    def test_never_contains_whitespace(self):
        for text in (
            "Vivo X FOLD5 5G 16+1T 青松",
            "OPPO Reno 15 活力版",
            "华为 Mate 60 Pro 12+512 雅川青",
            "荣耀 Magic Vs",
            "iQOO Neo10 Pro+ 16+1T",
        ):
            model = extract_model(text)
            assert model is None or not any(ch.isspace() for ch in model)


class TestSplitCompoundWords:
    def test_letters_digits_and_suffix(self):
        assert split_compound_words("s30promini") == "s 30 pro mini"


class TestSimpleCandidate:
    def test_rejected_tokens(self):
        for token in ("5g", "4g", "3g", "12gb", "8+256", "5800mah", "66w", "46mm"):
            assert _is_simple_candidate(token) is False

    def test_model_tokens(self):
        for token in ("y50", "a5x", "x200s", "60"):
            assert _is_simple_candidate(token) is True


class TestModelCore:
    def test_whole_words_kept(self):
        assert model_core("OPPO 全新 Reno15") == "全新reno15"

    def test_network_filler_removed(self):
        assert model_core("vivo Y50 全网通") == "y50"


# ---------------------------------------------------------------------------
# All attributes
# ---------------------------------------------------------------------------


class TestExtractAttributes:
    def test_full_listing(self):
        attrs = extract_attributes("vivo Y50 全网通5G 8GB+256GB 白金")
        assert attrs.brand == "vivo"
        assert attrs.model == "y50"
        assert attrs.version.value == "全网通5G"
        assert attrs.capacity == "8+256"
        assert attrs.color == "白金"
        assert attrs.watch_size is None

    def test_memoized(self):
        text = "OPPO Reno15 活力版 12+256 星光紫"
        assert extract_attributes(text) is extract_attributes(text)

    def test_reference_is_part_of_cache_key(self, reference):
        text = "OPPO Reno15 星光紫色"
        assert extract_attributes(text).color == "星光紫色"
        assert extract_attributes(text, reference).color == "星光紫"

    def test_text_mappings_applied(self):
        attrs = extract_attributes("HUAWEI GT5 蓝牙版 46mm 雾松蓝")
        assert attrs.brand == "华为"
        assert attrs.model == "watchgt5"
        assert attrs.color == "雾凇蓝"
        assert attrs.watch_size == "46mm"
