"""Application tests for the stock ledger via the service facade."""

import pytest
from ordering import services
from ordering.errors import InsufficientStock
from ordering.inventory.stock import StockItem
from protean import current_domain


class TestStockLedger:
    def test_register_creates_entry(self):
        stock_id = services.register_stock("item-tee", "M", 10)

        assert stock_id == "item-tee::M"
        assert current_domain.repository_for(StockItem).get(stock_id).on_hand == 10

    def test_register_again_adds(self):
        services.register_stock("item-tee", "M", 10)
        services.register_stock("item-tee", "M", 5)
        assert services.stock_level("item-tee", "M") == 15

    def test_unknown_variant_has_no_stock(self):
        assert services.stock_level("item-tee", "XXL") == 0

    def test_reserve_and_release(self):
        services.register_stock("item-tee", "M", 10)

        assert services.reserve_stock("item-tee::M", 4) == 6
        assert services.release_stock("item-tee::M", 1) == 7
        assert services.stock_level("item-tee", "M") == 7

    def test_reserving_more_than_available_changes_nothing(self):
        services.register_stock("item-tee", "M", 2)

        with pytest.raises(InsufficientStock) as exc_info:
            services.reserve_stock("item-tee::M", 3)

        assert exc_info.value.available == 2
        assert services.stock_level("item-tee", "M") == 2

    def test_reserving_unknown_variant(self):
        with pytest.raises(InsufficientStock) as exc_info:
            services.reserve_stock("item-tee::XXL", 1)
        assert exc_info.value.available == 0

    def test_release_of_unknown_variant_creates_entry(self):
        assert services.release_stock("item-cap::free", 2) == 2
        assert services.stock_level("item-cap", "free") == 2
