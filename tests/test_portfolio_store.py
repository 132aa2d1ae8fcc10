import json
import re
import tempfile
import unittest
from pathlib import Path

from services.portfolio.models import (
    CanvasNode, JournalEntry, investment_type_icon, investment_type_label, new_id,
)
from services.portfolio.search import portfolio_total, sort_stocks
from services.portfolio.store import DEFAULT_STRATEGIES, NotFoundError, PortfolioStore


class TestModels(unittest.TestCase):
    def test_new_id_format(self):
        rid = new_id("stock")
        self.assertRegex(rid, r"^stock_\d{13}_[0-9a-z]{9}$")
        self.assertNotEqual(new_id("node"), new_id("node"))
        self.assertTrue(re.match(r"^stock_strategy_\d+_", new_id("stock_strategy")))

    def test_investment_type_labels(self):
        self.assertEqual(investment_type_label("dividend-growth"), "Dividend Growth")
        self.assertEqual(investment_type_label("mystery"), "mystery")
        self.assertEqual(investment_type_icon("speculative"), "Zap")
        self.assertEqual(investment_type_icon("mystery"), "Circle")

    def test_entry_date_validation(self):
        with self.assertRaises(ValueError):
            JournalEntry(id="e", stock_id="s", date="yesterday")

    def test_node_type_validation(self):
        with self.assertRaises(ValueError):
            CanvasNode(id="n", stock_id="s", type="video", position="{}", data="{}")


class TestPortfolioStore(unittest.TestCase):
    def setUp(self):
        self.store = PortfolioStore()

    def test_create_and_get_stock(self):
        s = self.store.create_stock(ticker="aapl", name="Apple", shares=10, price="190.5")
        self.assertEqual(s.ticker, "AAPL")
        self.assertEqual(s.investment_type, "core")
        self.assertFalse(s.is_watchlist)
        self.assertIs(self.store.get_stock(s.id), s)
        d = s.to_dict()
        self.assertEqual(d["investmentType"], "core")
        self.assertIn("priceTarget", d)

    def test_unknown_fields_rejected(self):
        with self.assertRaises(ValueError):
            self.store.create_stock(ticker="X", name="X", colour="red")

    def test_missing_stock(self):
        with self.assertRaises(NotFoundError) as ctx:
            self.store.get_stock("nope")
        self.assertEqual(str(ctx.exception), "Stock not found")
        with self.assertRaises(NotFoundError):
            self.store.update_stock("nope", name="x")

    def test_update_stock_and_strategies(self):
        self.store.seed_strategies()
        s = self.store.create_stock(ticker="KO", name="Coca-Cola", strategy_ids=["strategy_core"])
        summary = self.store.list_stocks()[0]
        self.assertEqual([st.id for st in summary.strategies], ["strategy_core"])

        self.store.update_stock(s.id, ticker="ko", is_favorite=True,
                                strategy_ids=["strategy_dividend_growth", "strategy_high_dividend"])
        summary = self.store.list_stocks()[0]
        self.assertEqual(summary.stock.ticker, "KO")
        self.assertTrue(summary.stock.is_favorite)
        self.assertEqual(sorted(st.id for st in summary.strategies),
                         ["strategy_dividend_growth", "strategy_high_dividend"])

        self.store.update_stock(s.id, strategy_ids=[])
        self.assertEqual(self.store.list_stocks()[0].strategies, [])

    def test_update_thesis_touches_updated_at(self):
        s = self.store.create_stock(ticker="MSFT", name="Microsoft")
        before = s.updated_at
        self.store.update_thesis(s.id, "<p>Cloud</p>")
        self.assertEqual(self.store.get_stock(s.id).thesis, "<p>Cloud</p>")
        self.assertGreaterEqual(self.store.get_stock(s.id).updated_at, before)

    def test_journal_ordering_and_counts(self):
        s = self.store.create_stock(ticker="NVDA", name="Nvidia")
        self.store.create_entry(s.id, date="2024-03-01", content="b")
        self.store.create_entry(s.id, date="2023-12-15", content="a")
        last = self.store.create_entry(s.id, date="2024-05-20")
        self.assertEqual([e.content for e in self.store.list_entries(s.id)], ["a", "b", ""])
        self.assertEqual(self.store.latest_entry(s.id).id, last.id)
        self.assertEqual(self.store.list_stocks()[0].entry_count, 3)

        self.store.update_entry(last.id, "c")
        self.assertEqual(self.store.latest_entry(s.id).content, "c")
        self.assertTrue(self.store.delete_entry(last.id))
        self.assertFalse(self.store.delete_entry(last.id))
        self.assertIsNone(self.store.latest_entry("other"))

    def test_entry_requires_existing_stock(self):
        with self.assertRaises(NotFoundError):
            self.store.create_entry("missing", date="2024-01-01")

    def test_canvas_nodes(self):
        s = self.store.create_stock(ticker="TSLA", name="Tesla")
        n = self.store.create_node(s.id, type="text", position={"x": 10, "y": 20}, data={"content": "hi"})
        self.assertEqual(json.loads(n.position), {"x": 10, "y": 20})
        self.store.update_node(n.id, position={"x": 5, "y": 5})
        d = self.store.list_nodes(s.id)[0].to_dict()
        self.assertEqual(d["position"], {"x": 5, "y": 5})
        self.assertEqual(d["data"], {"content": "hi"})
        self.assertTrue(self.store.delete_node(n.id))
        self.assertEqual(self.store.list_nodes(s.id), [])

    def test_delete_stock_cascades(self):
        self.store.seed_strategies()
        s = self.store.create_stock(ticker="AMZN", name="Amazon", strategy_ids=["strategy_core"])
        e = self.store.create_entry(s.id, date="2024-01-01")
        self.store.create_node(s.id, type="chart", position={"x": 0, "y": 0}, data={"symbol": "AMZN"})
        self.assertTrue(self.store.delete_stock(s.id))
        self.assertEqual(self.store.list_stocks(), [])
        self.assertEqual(self.store.list_nodes(s.id), [])
        self.assertEqual(self.store.list_entries(s.id), [])
        with self.assertRaises(NotFoundError):
            self.store.update_entry(e.id, "x")
        self.assertFalse(self.store.delete_stock(s.id))
        # strategies survive
        self.assertEqual(len(self.store.list_strategies()), len(DEFAULT_STRATEGIES))

    def test_strategies(self):
        self.store.create_strategy(name="Value", color="#000000")
        self.store.create_strategy(name="Growth")
        names = [s.name for s in self.store.list_strategies()]
        self.assertEqual(names, ["Growth", "Value"])
        growth = self.store.list_strategies()[0]
        self.assertEqual(growth.icon, "Shield")
        self.assertTrue(growth.is_active)
        self.store.update_strategy(growth.id, is_active=False, description="d")
        self.assertFalse(self.store.get_strategy(growth.id).is_active)
        with self.assertRaises(ValueError):
            self.store.update_strategy(growth.id, weight=5)

    def test_delete_strategy_unlinks_stocks(self):
        st = self.store.create_strategy(name="Momentum")
        self.store.create_stock(ticker="META", name="Meta", strategy_ids=[st.id])
        self.assertTrue(self.store.delete_strategy(st.id))
        self.assertEqual(self.store.list_stocks()[0].strategies, [])
        with self.assertRaises(NotFoundError):
            self.store.get_strategy(st.id)

    def test_seed_is_idempotent(self):
        first = self.store.seed_strategies()
        second = self.store.seed_strategies()
        self.assertEqual(len(first), 6)
        self.assertEqual(second, [])
        self.assertEqual(self.store.get_strategy("strategy_speculative").color, "#ef4444")

    def test_snapshot_round_trip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "portfolio.json"
            store = PortfolioStore(path)
            store.seed_strategies()
            s = store.create_stock(ticker="V", name="Visa", strategy_ids=["strategy_core"], price_target="300")
            store.create_entry(s.id, date="2024-02-02", content="note")
            store.create_node(s.id, type="image", position={"x": 1, "y": 2}, data={"url": "http://x"})
            self.assertTrue(path.exists())

            reloaded = PortfolioStore(path)
            summary = reloaded.list_stocks()[0]
            self.assertEqual(summary.stock.ticker, "V")
            self.assertEqual(summary.stock.price_target, "300")
            self.assertEqual(summary.entry_count, 1)
            self.assertEqual([st.id for st in summary.strategies], ["strategy_core"])
            self.assertEqual(reloaded.list_nodes(s.id)[0].to_dict()["data"], {"url": "http://x"})


class TestStockFieldCoercion(unittest.TestCase):
    def setUp(self):
        self.store = PortfolioStore()

    def test_update_coerces_request_values(self):
        s = self.store.create_stock(ticker="KO", name="Coca-Cola", shares="7", price=60, is_watchlist="true")
        self.assertEqual(s.shares, 7)
        self.assertEqual(s.price, "60")
        self.assertTrue(s.is_watchlist)
        self.store.update_stock(s.id, shares="10", is_watchlist="false", is_favorite=1, price_target=70)
        self.assertEqual(s.shares, 10)
        self.assertFalse(s.is_watchlist)
        self.assertIs(s.is_favorite, True)
        self.assertEqual(s.price_target, "70")
        self.store.update_stock(s.id, price_target="")
        self.assertIsNone(s.price_target)

    def test_sort_after_string_shares(self):
        a = self.store.create_stock(ticker="A", name="A", shares=1, price="10")
        self.store.create_stock(ticker="B", name="B", shares=2, price="10")
        self.store.update_stock(a.id, shares="10")
        stocks = self.store.list_stocks()
        self.assertEqual(portfolio_total(stocks), 120.0)
        ordered = sort_stocks(stocks, "value", "desc")
        self.assertEqual([x.stock.ticker for x in ordered], ["A", "B"])


if __name__ == '__main__':
    unittest.main()
