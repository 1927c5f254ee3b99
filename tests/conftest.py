import pytest

from gstr2a_recon.core import ai
from gstr2a_recon.core.audit import audit_repo
from gstr2a_recon.db.memory import APP_STATE

GSTIN_A = "22AAAAA0000A1Z5"
GSTIN_B = "27BBBBB1111B1Z5"


def line_item(txval, iamt=0, camt=0, samt=0, csamt=0, rt=18, num=1):
    return {
        "num": num,
        "itm_det": {"txval": txval, "rt": rt, "iamt": iamt, "camt": camt, "samt": samt, "csamt": csamt},
    }


def b2b_invoice(inum, idt="05-08-2025", val=1180, items=None):
    return {
        "inum": inum,
        "idt": idt,
        "val": val,
        "pos": "23",
        "rchrg": "N",
        "inv_typ": "R",
        "itms": items if items is not None else [line_item(1000, camt=90, samt=90)],
    }


def cdn_note(nt_num, nt_dt="10-08-2025", val=118, items=None, ntty="C"):
    return {
        "nt_num": nt_num,
        "nt_dt": nt_dt,
        "ntty": ntty,
        "val": val,
        "itms": items if items is not None else [line_item(100, camt=9, samt=9)],
    }


def b2b_payload(*groups):
    """groups: (ctin, [invoice, ...]) pairs"""
    return {"b2b": [{"ctin": ctin, "inv": invoices} for ctin, invoices in groups]}


def cdn_payload(*groups):
    return {"cdn": [{"ctin": ctin, "nt": notes} for ctin, notes in groups]}


def ledger_bill(pbill, ctin=GSTIN_A, date="2025-08-05T00:00:00.000Z", taxable=1000, gst=180, net=1180):
    return {
        "PBILL": pbill,
        "C_CST": ctin,
        "PBILLDATE": date,
        "N_B_AMT": net,
        "TOTAL_TAXABLE_VALUE": taxable,
        "TOTAL_GST_AMOUNT": gst,
    }


@pytest.fixture(autouse=True)
def clean_state():
    APP_STATE.clear()
    audit_repo.clear()
    ai.set_client_for_testing(None)
    yield
    APP_STATE.clear()
    ai.set_client_for_testing(None)
