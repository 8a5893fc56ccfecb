import pytest

from pricewatch.ingest.models import CompetitorSnapshot
from pricewatch.logic.comparison import ComparisonRow, compute_comparison, market_position


def snapshot(id, name, product, price, failures=0):
    return CompetitorSnapshot(
        id=id, name=name, product=product, price=price, last_scraped=None, status=None, recent_failures=failures
    )


def test_comparison_row_values():
    rows = compute_comparison(
        ["ED Medication", "Skin Care"],
        {"ED Medication": 10.0},
        [
            snapshot(1, "A", "ED Medication", 8.0),
            snapshot(2, "B", "ED Medication", 12.0),
            snapshot(3, "C", "ED Medication", None),
            snapshot(4, "D", "Hair Loss Treatment", 30.0),
        ],
    )

    ed, skin = rows
    assert ed.our_price == 10.0
    assert [c.name for c in ed.competitors] == ["A", "B", "C"]
    assert ed.avg_competitor_price == pytest.approx(10.0)
    assert ed.lowest_competitor_price == pytest.approx(8.0)
    assert ed.difference == pytest.approx(25.0)
    assert ed.status == "much_higher"
    assert ed.cheapest.name == "A"

    assert skin.competitors == []
    assert skin.our_price == 0.0
    assert skin.difference == 0.0
    assert skin.status == "neutral"


@pytest.mark.parametrize(
    "ours, lowest, status",
    [(9.0, 10.0, "competitive"), (10.0, 10.0, "neutral"), (11.5, 10.0, "higher"), (13.0, 10.0, "much_higher")],
)
def test_status_bands(ours, lowest, status):
    (row,) = compute_comparison(["X"], {"X": ours}, [snapshot(1, "A", "X", lowest)])
    assert row.status == status


def test_market_position():
    rows = [
        ComparisonRow(product="A", our_price=11.0, avg_competitor_price=10.0),
        ComparisonRow(product="B", our_price=22.0, avg_competitor_price=20.0),
    ]
    position = market_position(rows)
    assert position.position == "above"
    assert position.percentage == pytest.approx(10.0)
    assert position.description == "10.0% above market average"

    below = market_position([ComparisonRow(product="A", our_price=8.0, avg_competitor_price=10.0)])
    assert below.position == "below"
    assert below.description == "20.0% below market average"

    assert market_position([]).description == "No data available"
    assert market_position([ComparisonRow(product="A", our_price=10.0, avg_competitor_price=10.0)]).position == "equal"
