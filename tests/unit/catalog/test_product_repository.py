"""Unit tests for the Product repository's inventory bookkeeping."""

from uuid import uuid4

import pytest

from modules.catalog.repositories import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return ProductDjangoRepository()


class TestDecrement:
    def test_decrements_when_enough(self, repo, make_product):
        ring = make_product(inventory_quantity=3)
        assert repo.decrement_inventory(ring.id, 2) is True
        ring.refresh_from_db()
        assert ring.inventory_quantity == 1

    def test_takes_the_last_unit(self, repo, make_product):
        ring = make_product(inventory_quantity=1)
        assert repo.decrement_inventory(ring.id, 1) is True
        assert repo.available_quantity(ring.id) == 0

    def test_rejects_when_short(self, repo, make_product):
        ring = make_product(inventory_quantity=1)
        assert repo.decrement_inventory(ring.id, 2) is False
        ring.refresh_from_db()
        assert ring.inventory_quantity == 1

    def test_second_buyer_of_last_unit_loses(self, repo, make_product):
        ring = make_product(inventory_quantity=1)
        assert repo.decrement_inventory(ring.id, 1) is True
        assert repo.decrement_inventory(ring.id, 1) is False
        assert repo.available_quantity(ring.id) == 0


class TestRestore:
    def test_restock_and_release_sale(self, repo, make_product):
        ring = make_product(inventory_quantity=3, sold_count=2)
        repo.restore_inventory(ring.id, 2, release_sale=True)
        ring.refresh_from_db()
        assert ring.inventory_quantity == 5
        assert ring.sold_count == 0

    def test_restock_only(self, repo, make_product):
        ring = make_product(inventory_quantity=3, sold_count=4)
        repo.restore_inventory(ring.id, 2, release_sale=False)
        ring.refresh_from_db()
        assert ring.inventory_quantity == 5
        assert ring.sold_count == 4

    def test_sold_count_never_goes_negative(self, repo, make_product):
        ring = make_product(inventory_quantity=0, sold_count=1)
        repo.restore_inventory(ring.id, 3, release_sale=True)
        ring.refresh_from_db()
        assert ring.sold_count == 0

    def test_untracked_line_only_releases_sale(self, repo, make_product):
        engraving = make_product(
            inventory_quantity=0, track_quantity=False, sold_count=2
        )
        repo.restore_inventory(engraving.id, 2, release_sale=True, restock=False)
        engraving.refresh_from_db()
        assert engraving.inventory_quantity == 0
        assert engraving.sold_count == 0


class TestLookups:
    def test_soft_deleted_product_is_hidden(self, repo, make_product):
        ring = make_product()
        ring.delete()
        assert repo.get_by_id(str(ring.id)) is None

    def test_invalid_id_returns_none(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_unknown_id_returns_none(self, repo):
        assert repo.get_by_id(str(uuid4())) is None

    def test_commit_sale(self, repo, make_product):
        ring = make_product()
        repo.commit_sale(ring.id, 3)
        ring.refresh_from_db()
        assert ring.sold_count == 3

    def test_sku_is_normalised(self, make_product):
        ring = make_product(sku=" ring-xyz ")
        assert ring.sku == "RING-XYZ"
