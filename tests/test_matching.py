from decimal import Decimal

import pytest

from conftest import GSTIN_A, GSTIN_B, b2b_invoice, b2b_payload, cdn_note, cdn_payload, ledger_bill, line_item
from gstr2a_recon.core.comparison import compare_pair
from gstr2a_recon.core.exceptions import DuplicateRecordError
from gstr2a_recon.core.matching import build_index, match_records
from gstr2a_recon.core.normalizer import flatten_b2b, parse_b2b_payload, parse_cdn_payload, parse_ledger_payload
from gstr2a_recon.core.period import TaxPeriod
from gstr2a_recon.core.reconciliation import reconcile
from gstr2a_recon.schemas.authority import AuthorityFamily
from gstr2a_recon.schemas.reconciliation import (
    DuplicatePolicy,
    PresentIn,
    ReconciliationKey,
    ReconciliationStatus,
)

PERIOD = TaxPeriod.parse("082025")
BOTH = [AuthorityFamily.B2B, AuthorityFamily.CDN]


def run(b2b=None, cdn=None, ledger=(), tolerance="2.00", families=BOTH, policy=DuplicatePolicy.FIRST):
    return reconcile(
        b2b=parse_b2b_payload(b2b),
        cdn=parse_cdn_payload(cdn),
        ledger=parse_ledger_payload(list(ledger)),
        period=PERIOD,
        tolerance=Decimal(tolerance),
        families=families,
        duplicate_policy=policy,
    )


def test_matching_invoice_is_matched():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100")])),
        ledger=[ledger_bill("INV100", taxable=1000.00, gst=180.00)],
    )

    assert len(report.results) == 1
    result = report.results[0]
    assert result.status == ReconciliationStatus.MATCHED
    assert result.present_in == PresentIn.BOTH
    assert result.mismatch_reasons == ()
    assert result.authority_taxable_value == Decimal("1000.00")
    assert result.authority_gst_amount == Decimal("180.00")
    assert result.ledger_taxable_value == Decimal("1000.00")
    assert result.ledger_gst_amount == Decimal("180.00")
    assert result.document_value == Decimal("1180")


def test_gst_difference_beyond_tolerance_is_mismatched():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100")])),
        ledger=[ledger_bill("INV100", gst=185.00)],
    )

    result = report.results[0]
    assert result.status == ReconciliationStatus.MISMATCHED
    assert result.mismatch_reasons == ("GST Amount mismatch: Authority(180.00) vs Ledger(185.00)",)


def test_authority_only_invoice_is_missing_in_ledger():
    report = run(b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV200")])))

    result = report.results[0]
    assert result.status == ReconciliationStatus.MISSING_IN_LEDGER
    assert result.present_in == PresentIn.AUTHORITY_ONLY
    assert result.authority_taxable_value == Decimal("1000")
    assert result.authority_gst_amount == Decimal("180")
    assert result.ledger_taxable_value is None
    assert result.ledger_gst_amount is None
    assert result.mismatch_reasons == ()


def test_ledger_only_bill_is_missing_in_authority():
    report = run(ledger=[ledger_bill("INV300", date="2025-08-20T00:00:00.000Z", net=None)])

    result = report.results[0]
    assert result.status == ReconciliationStatus.MISSING_IN_AUTHORITY
    assert result.present_in == PresentIn.LEDGER_ONLY
    assert result.document_date == "20/08/2025"
    assert result.document_value is None
    assert result.authority_taxable_value is None
    assert result.authority_gst_amount is None
    assert result.ledger_taxable_value == Decimal("1000")


def test_empty_authority_yields_one_result_per_ledger_bill():
    ledger = [ledger_bill(f"P{i}", ctin=GSTIN_B) for i in range(4)]
    report = run(ledger=ledger)

    assert len(report.results) == 4
    assert all(r.status == ReconciliationStatus.MISSING_IN_AUTHORITY for r in report.results)
    assert report.summary.missing_in_authority == 4


def test_empty_input_returns_empty_report():
    report = run(ledger=[ledger_bill("OLD", date="2025-07-01T00:00:00.000Z")])
    assert report.is_empty
    assert report.summary.total == 0


@pytest.mark.parametrize(
    "ledger_taxable, expected",
    [
        (998.00, ReconciliationStatus.MATCHED),
        (1002.00, ReconciliationStatus.MATCHED),
        (997.99, ReconciliationStatus.MISMATCHED),
        (1002.01, ReconciliationStatus.MISMATCHED),
    ],
)
def test_tolerance_boundary_is_inclusive(ledger_taxable, expected):
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100")])),
        ledger=[ledger_bill("INV100", taxable=ledger_taxable)],
    )
    assert report.results[0].status == expected


def test_custom_tolerance_is_honoured():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100")])),
        ledger=[ledger_bill("INV100", gst=185.00)],
        tolerance="5.00",
    )
    assert report.results[0].status == ReconciliationStatus.MATCHED


def test_date_mismatch_reason_uses_both_renderings():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100", idt="04-08-2025")])),
        ledger=[ledger_bill("INV100")],
    )
    assert report.results[0].mismatch_reasons == (
        "Date mismatch: Authority(04-08-2025) vs Ledger(05/08/2025)",
    )


def test_slash_separated_authority_date_matches():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100", idt="05/08/2025")])),
        ledger=[ledger_bill("INV100")],
    )
    assert report.results[0].status == ReconciliationStatus.MATCHED


def test_reasons_are_ordered_date_gst_taxable():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100", idt="01-08-2025")])),
        ledger=[ledger_bill("INV100", taxable=900, gst=100)],
    )
    reasons = report.results[0].mismatch_reasons
    assert len(reasons) == 3
    assert reasons[0].startswith("Date mismatch")
    assert reasons[1] == "GST Amount mismatch: Authority(180.00) vs Ledger(100.00)"
    assert reasons[2] == "Taxable Value mismatch: Authority(1000.00) vs Ledger(900.00)"


def test_invoice_value_is_not_compared():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV100", val=99999)])),
        ledger=[ledger_bill("INV100", net=1180)],
    )
    assert report.results[0].status == ReconciliationStatus.MATCHED


def test_keys_are_exact_and_case_sensitive():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("inv100")])),
        ledger=[ledger_bill("INV100")],
    )
    statuses = sorted(r.status.value for r in report.results)
    assert statuses == ["Missing in Authority", "Missing in Ledger"]


def test_same_number_from_different_suppliers_are_separate_keys():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV1")]), (GSTIN_B, [b2b_invoice("INV1")])),
        ledger=[ledger_bill("INV1", ctin=GSTIN_A)],
    )
    by_gstin = {r.counterparty_tax_id: r.status for r in report.results}
    assert by_gstin == {
        GSTIN_A: ReconciliationStatus.MATCHED,
        GSTIN_B: ReconciliationStatus.MISSING_IN_LEDGER,
    }


def test_composite_key_does_not_collide_on_separator():
    # A joined "number_gstin" string would make these two keys equal
    report = run(
        b2b=b2b_payload(("B_C", [b2b_invoice("A")])),
        ledger=[ledger_bill("A_B", ctin="C")],
    )
    assert len(report.results) == 2


def test_cdn_notes_match_against_ledger():
    report = run(
        cdn=cdn_payload((GSTIN_B, [cdn_note("CN-1", items=[line_item(100, iamt=18)])])),
        ledger=[ledger_bill("CN-1", ctin=GSTIN_B, date="2025-08-10T00:00:00.000Z", taxable=100, gst=18)],
    )
    assert report.results[0].status == ReconciliationStatus.MATCHED


def test_unselected_family_is_ignored():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV1")])),
        cdn=cdn_payload((GSTIN_A, [cdn_note("CN1")])),
        families=[AuthorityFamily.B2B],
    )
    assert [r.document_number for r in report.results] == ["INV1"]
    assert report.families == ["B2B"]


def test_ledger_outside_period_and_bad_dates_do_not_become_missing():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("INV1")])),
        ledger=[
            ledger_bill("INV1"),
            ledger_bill("JULY", date="2025-07-15T00:00:00.000Z"),
            ledger_bill("BROKEN", date="soon"),
        ],
    )
    assert [r.document_number for r in report.results] == ["INV1"]
    assert report.ledger_count == 1


def test_completeness_exclusivity_and_sort_order():
    b2b = b2b_payload(
        (GSTIN_A, [b2b_invoice("INV-10"), b2b_invoice("INV-2"), b2b_invoice("A-1", idt="01-08-2025")]),
        (GSTIN_B, [b2b_invoice("INV-10")]),
    )
    cdn = cdn_payload((GSTIN_B, [cdn_note("CN-9")]))
    ledger = [
        ledger_bill("INV-10"),
        ledger_bill("A-1"),
        ledger_bill("Z-99"),
        ledger_bill("INV-2", gst=170),
    ]
    report = run(b2b=b2b, cdn=cdn, ledger=ledger)

    authority_keys = {("INV-10", GSTIN_A), ("INV-2", GSTIN_A), ("A-1", GSTIN_A), ("INV-10", GSTIN_B), ("CN-9", GSTIN_B)}
    ledger_keys = {("INV-10", GSTIN_A), ("A-1", GSTIN_A), ("Z-99", GSTIN_A), ("INV-2", GSTIN_A)}
    union = authority_keys | ledger_keys

    keys = [tuple(r.key) for r in report.results]
    assert len(keys) == len(union)
    assert set(keys) == union

    numbers = [r.document_number for r in report.results]
    assert numbers == sorted(numbers)

    for r in report.results:
        if r.status == ReconciliationStatus.MATCHED:
            assert r.present_in == PresentIn.BOTH and not r.mismatch_reasons
        if r.mismatch_reasons:
            assert r.status == ReconciliationStatus.MISMATCHED

    s = report.summary
    assert (s.matched, s.mismatched, s.missing_in_ledger, s.missing_in_authority) == (1, 2, 2, 1)
    assert s.total == 6


def test_reconcile_is_idempotent():
    kwargs = dict(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice(f"INV{i}") for i in range(20)])),
        ledger=[ledger_bill(f"INV{i}", gst=180 + i) for i in range(5, 25)],
    )
    first = run(**kwargs)
    second = run(**kwargs)
    assert first.results == second.results
    assert first.summary == second.summary


def test_build_index_duplicate_policies():
    records = flatten_b2b(parse_b2b_payload(b2b_payload(
        (GSTIN_A, [b2b_invoice("DUP", val=1), b2b_invoice("DUP", val=2)])
    )))
    key = ReconciliationKey("DUP", GSTIN_A)

    first = build_index(records, lambda r: r.key(), DuplicatePolicy.FIRST)
    last = build_index(records, lambda r: r.key(), DuplicatePolicy.LAST)

    assert first[key].document_value == Decimal("1")
    assert last[key].document_value == Decimal("2")
    with pytest.raises(DuplicateRecordError):
        build_index(records, lambda r: r.key(), DuplicatePolicy.REJECT)


def test_duplicate_keys_yield_a_single_result():
    report = run(
        b2b=b2b_payload((GSTIN_A, [b2b_invoice("DUP"), b2b_invoice("DUP", val=5)])),
        ledger=[ledger_bill("DUP"), ledger_bill("DUP", gst=0)],
    )
    assert len(report.results) == 1
    assert report.results[0].status == ReconciliationStatus.MATCHED
    assert report.results[0].document_value == Decimal("1180")


def test_compare_pair_directly():
    authority = flatten_b2b(parse_b2b_payload(b2b_payload((GSTIN_A, [b2b_invoice("INV1")]))))[0]
    ledger = parse_ledger_payload([ledger_bill("INV1", taxable=1010)])[0]

    result = compare_pair(authority, ledger, Decimal("2.00"))

    assert result.status == ReconciliationStatus.MISMATCHED
    assert result.mismatch_reasons == ("Taxable Value mismatch: Authority(1000.00) vs Ledger(1010.00)",)


def test_match_records_never_raises_for_mismatches():
    authority = flatten_b2b(parse_b2b_payload(b2b_payload((GSTIN_A, [b2b_invoice("INV1")]))))
    ledger = parse_ledger_payload([ledger_bill("INV1", taxable=0, gst=0, date="2099-01-01")])
    results = match_records(authority, ledger, tolerance=Decimal("0"))
    assert results[0].status == ReconciliationStatus.MISMATCHED
    assert len(results[0].mismatch_reasons) == 3
