import unittest

from schemas.holding import CombinedSummary
from schemas.portfolio_insights import CryptoStockBalance, InsightFilters, RiskProfile
from services.portfolio.insight_generator import (
    RULES,
    filter_insights,
    generate_insights,
    has_new_insights,
    sort_insights_by_priority,
)
from services.portfolio.risk_analyzer import analyze_risk
from portfolio_factories import balanced_ten, make_holding, make_portfolio

NOW = 1_700_000_000_000


def _run(crypto, stock, summary, dismissed=()):
    risk = analyze_risk(crypto, stock, summary)
    return generate_insights(crypto, stock, summary, risk, dismissed, now_ms=NOW)


def _ids(insights):
    return [i.id for i in insights]


class ScenarioTests(unittest.TestCase):
    def test_single_btc_fires_concentration_and_profit_taking(self):
        crypto, stock, summary = make_portfolio(
            [make_holding("1", "BTC", quantity=1, purchase_price=20000, current_price=30000)]
        )
        ids = _ids(_run(crypto, stock, summary))
        self.assertIn("concentration-high", ids)
        self.assertIn("profit-taking-1", ids)
        self.assertNotIn("concentration-medium", ids)
        self.assertEqual(
            ids,
            [
                "concentration-high",
                "profit-taking-1",
                "diversification-low",
                "no-stock-exposure",
                "rebalancing-needed",
                "set-alerts",
                "positive-performance",
            ],
        )

    def test_zero_holdings_only_onboarding(self):
        crypto, stock, summary = make_portfolio()
        for s in (summary, None):
            insights = _run(crypto, stock, s)
            self.assertEqual(_ids(insights), ["get-started"])
            self.assertEqual(insights[0].priority, "high")

    def test_balanced_ten_only_alert_recommendation(self):
        insights = _run(*balanced_ten())
        self.assertEqual(_ids(insights), ["set-alerts"])
        # equal values keep snapshot order, crypto first
        self.assertIn("(C0, C1, C2)", insights[0].message)
        self.assertEqual(insights[0].metadata["symbols"], ["C0", "C1", "C2"])

    def test_tax_loss_harvest_counts_losers(self):
        h = make_holding(
            "1", "ETH", quantity=1, purchase_price=1000, current_value=850, gain_loss=-150, gain_loss_percentage=-15
        )
        crypto, stock, summary = make_portfolio([h])
        insights = {i.id: i for i in _run(crypto, stock, summary)}
        self.assertIn("tax-loss-harvest", insights)
        self.assertEqual(insights["tax-loss-harvest"].metadata["count"], 1)
        self.assertIn("You have 1 asset with losses", insights["tax-loss-harvest"].message)
        # exactly -15% is not a significant loss
        self.assertNotIn("performance-drop-1", insights)


class RuleTests(unittest.TestCase):
    def test_medium_concentration(self):
        risk = RiskProfile(concentration_risk=32.5, concentration_asset="AAPL")
        insights = generate_insights(None, None, None, risk, now_ms=NOW)
        c = [i for i in insights if i.type == "concentration_risk"]
        self.assertEqual(_ids(c), ["concentration-medium"])
        self.assertIn("AAPL represents 32.5%", c[0].message)

    def test_concentration_boundaries(self):
        at_40 = generate_insights(None, None, None, RiskProfile(concentration_risk=40), now_ms=NOW)
        at_25 = generate_insights(None, None, None, RiskProfile(concentration_risk=25), now_ms=NOW)
        self.assertIn("concentration-medium", _ids(at_40))
        self.assertNotIn("concentration-high", _ids(at_40))
        self.assertNotIn("concentration-medium", _ids(at_25))

    def test_each_loser_gets_its_own_insight(self):
        crypto, stock, summary = make_portfolio(
            [make_holding("a", "DOGE", purchase_price=100, current_price=50)],
            [
                make_holding("b", "TSLA", "stock", purchase_price=100, current_price=80),
                make_holding("c", "AAPL", "stock", purchase_price=100, current_price=90),
            ],
        )
        insights = _run(crypto, stock, summary)
        drops = [i for i in insights if i.type == "performance_alert"]
        self.assertEqual(_ids(drops), ["performance-drop-a", "performance-drop-b"])
        self.assertEqual(drops[0].action_path, "/crypto")
        self.assertEqual(drops[1].action_path, "/stocks")
        self.assertIn("TSLA has dropped 20.00%", drops[1].message)

    def test_low_diversification_pluralizes(self):
        crypto, stock, summary = make_portfolio(
            [make_holding("1", "BTC")], [make_holding("2", "AAPL", "stock")]
        )
        msg = {i.id: i.message for i in _run(crypto, stock, summary)}["diversification-low"]
        self.assertTrue(msg.startswith("You have 2 assets."))

    def test_missing_crypto_exposure_is_low_priority(self):
        crypto, stock, summary = make_portfolio([], [make_holding("1", "AAPL", "stock")])
        insights = {i.id: i for i in _run(crypto, stock, summary)}
        self.assertEqual(insights["no-crypto-exposure"].priority, "low")
        self.assertNotIn("no-stock-exposure", insights)

    def test_rebalancing_names_heavy_and_light(self):
        risk = RiskProfile(crypto_stock_balance=CryptoStockBalance(crypto=20, stock=80))
        insights = {i.id: i for i in generate_insights(None, None, None, risk, now_ms=NOW)}
        msg = insights["rebalancing-needed"].message
        self.assertIn("towards stocks", msg)
        self.assertIn("adding more cryptocurrency", msg)

    def test_alert_recommendation_top_three_by_value(self):
        crypto, stock, summary = make_portfolio(
            [make_holding("1", "SOL", purchase_price=10), make_holding("2", "BTC", purchase_price=500)],
            [
                make_holding("3", "AAPL", "stock", purchase_price=200),
                make_holding("4", "MSFT", "stock", purchase_price=300),
            ],
        )
        insight = {i.id: i for i in _run(crypto, stock, summary)}["set-alerts"]
        self.assertIn("(BTC, MSFT, AAPL)", insight.message)
        # input order untouched
        self.assertEqual([h.symbol for h in crypto.holdings], ["SOL", "BTC"])

    def test_positive_performance_is_informational(self):
        summary = CombinedSummary(total_value=110, total_invested=100, total_gain_loss=10, total_gain_loss_percentage=10)
        insights = {i.id: i for i in generate_insights(None, None, summary, RiskProfile(), now_ms=NOW)}
        insight = insights["positive-performance"]
        self.assertFalse(insight.actionable)
        self.assertIn("up $10.00 (10.00%)", insight.message)

    def test_fresh_insights_are_not_dismissed(self):
        insights = _run(*balanced_ten())
        self.assertTrue(all(not i.dismissed and i.timestamp == NOW for i in insights))

    def test_catalog_has_twelve_rules(self):
        self.assertEqual(len(RULES), 12)


class StabilityTests(unittest.TestCase):
    def _portfolio(self):
        return make_portfolio(
            [make_holding("x1", "BTC", purchase_price=100, current_price=300)],
            [make_holding("y1", "AAPL", "stock", purchase_price=100, current_price=70)],
        )

    def test_ids_are_deterministic(self):
        first = _ids(_run(*self._portfolio()))
        second = _ids(_run(*self._portfolio()))
        self.assertEqual(first, second)

    def test_dismissed_ids_are_filtered_while_condition_holds(self):
        crypto, stock, summary = self._portfolio()
        before = _ids(_run(crypto, stock, summary))
        self.assertIn("profit-taking-x1", before)
        after = _ids(_run(crypto, stock, summary, dismissed=["profit-taking-x1", "unknown-id"]))
        self.assertEqual(after, [i for i in before if i != "profit-taking-x1"])
        # cleared set brings it back
        self.assertEqual(_ids(_run(crypto, stock, summary, dismissed=[])), before)


class HelperTests(unittest.TestCase):
    def setUp(self):
        crypto, stock, summary = make_portfolio(
            [make_holding("1", "BTC", quantity=1, purchase_price=20000, current_price=30000)]
        )
        self.insights = _run(crypto, stock, summary)

    def test_priority_sort_is_stable(self):
        ordered = sort_insights_by_priority(self.insights)
        self.assertEqual(
            _ids(ordered),
            [
                "concentration-high",
                "profit-taking-1",
                "diversification-low",
                "no-stock-exposure",
                "rebalancing-needed",
                "set-alerts",
                "positive-performance",
            ],
        )
        self.assertEqual([i.priority for i in ordered][:1], ["high"])

    def test_sort_moves_high_before_low(self):
        shuffled = list(reversed(self.insights))
        self.assertEqual(sort_insights_by_priority(shuffled)[0].id, "concentration-high")
        self.assertEqual(
            [i.id for i in sort_insights_by_priority(shuffled) if i.priority == "low"],
            ["positive-performance", "set-alerts"],
        )

    def test_filters(self):
        by_category = filter_insights(self.insights, InsightFilters(category="Diversification"))
        self.assertEqual(_ids(by_category), ["diversification-low", "no-stock-exposure"])

        by_priority = filter_insights(self.insights, InsightFilters(priority="low"))
        self.assertEqual(_ids(by_priority), ["set-alerts", "positive-performance"])

        by_type = filter_insights(self.insights, InsightFilters(type="profit_taking"))
        self.assertEqual(_ids(by_type), ["profit-taking-1"])

        by_symbol = filter_insights(self.insights, InsightFilters(search_term="btc"))
        self.assertIn("concentration-high", _ids(by_symbol))
        self.assertIn("profit-taking-1", _ids(by_symbol))

        self.assertEqual(filter_insights(self.insights, InsightFilters(search_term="   ")), self.insights)
        self.assertEqual(filter_insights(self.insights, None), self.insights)

    def test_has_new_insights(self):
        self.assertTrue(has_new_insights(self.insights, []))
        self.assertFalse(has_new_insights(self.insights, _ids(self.insights)))
        self.assertFalse(has_new_insights([], []))


if __name__ == "__main__":
    unittest.main()
