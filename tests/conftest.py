"""Test fixtures: sample catalog and reference data."""

import pytest

from smartmatch.catalog.index import CatalogIndex, load_reference
from smartmatch.reference import overrides
from smartmatch.schemas import BrandEntry, CatalogProduct, CatalogSKU

BRANDS = [
    BrandEntry(name="vivo", spell="vivo"),
    BrandEntry(name="OPPO", spell="oppo"),
    BrandEntry(name="华为", spell="huawei"),
    BrandEntry(name="小米", spell="xiaomi"),
    BrandEntry(name="红米", spell="redmi"),
]


def _product(pid, name, brand, skus):
    return CatalogProduct(
        id=pid,
        name=name,
        brand=brand,
        skus=[
            CatalogSKU(id=f"{pid}-{i}", name=f"{name} {spec} {color}", spu_id=pid, color=color, spec=spec)
            for i, (spec, color) in enumerate(skus)
        ],
    )


PRODUCTS = [
    _product(1, "vivo Y50", "vivo", [("8GB+256GB", "白金"), ("8GB+128GB", "白金"), ("8GB+256GB", "星夜黑")]),
    _product(2, "vivo X200s", "vivo", [("12GB+512GB", "简黑"), ("16GB+1TB", "薄荷青")]),
    _product(3, "vivo X Fold5", "vivo", [("16GB+1TB", "青松"), ("16GB+512GB", "钛色")]),
    _product(4, "OPPO Reno15 活力版", "OPPO", [("12GB+256GB", "星光紫")]),
    _product(5, "OPPO Reno15", "OPPO", [("12GB+256GB", "星光紫"), ("16GB+512GB", "雾凇蓝")]),
    _product(6, "OPPO Watch X2 Mini", "OPPO", [("42mm", "皓月银")]),
    _product(7, "华为 Mate 60 Pro", "华为", [("12GB+512GB", "雅川青")]),
    _product(8, "vivo Y50 礼盒", "vivo", [("8GB+256GB", "白金")]),
]


@pytest.fixture(autouse=True)
def _reset_overrides():
    yield
    overrides.reload(None)


@pytest.fixture()
def brands():
    return list(BRANDS)


@pytest.fixture()
def products():
    return list(PRODUCTS)


@pytest.fixture()
def reference(brands, products):
    return load_reference(brands, products)


@pytest.fixture()
def catalog(products, reference):
    return CatalogIndex(products, reference)
