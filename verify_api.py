import requests
import os
import sys

BASE_URL = os.getenv("EXPORT_API_URL", "http://localhost:8080")
API_KEY = os.getenv("API_KEY", "")
YEAR = 2024

HEADERS = {"X-API-Key": API_KEY} if API_KEY else {}


def check_health():
    print("Testing /health...")
    try:
        response = requests.get(f"{BASE_URL}/health")
        if response.status_code == 200:
            print("✅ /health is OK")
            print(f"   Response: {response.json()}")
            return True
        else:
            print(f"❌ /health failed with {response.status_code}")
            return False
    except Exception as e:
        print(f"❌ /health failed: {e}")
        return False


def check_sie_export():
    print(f"\nTesting /api/v1/export/sie?year={YEAR}...")
    try:
        response = requests.get(
            f"{BASE_URL}/api/v1/export/sie",
            params={"year": YEAR, "includeOpeningBalances": "true"},
            headers=HEADERS,
        )
        if response.status_code != 200:
            print(f"❌ SIE export failed with {response.status_code}")
            print(f"   Response: {response.text}")
            return False

        text = response.content.decode("iso-8859-1")
        lines = text.split("\r\n")
        print("✅ SIE export succeeded")
        print(f"   {response.headers.get('content-disposition')}")
        print(f"   {len(lines)} lines, {sum(1 for line in lines if line.startswith('#VER'))} verifications")

        ok = lines[0] == "#FLAGGA 0" and text.endswith("\r\n")
        print(f"{'✅' if ok else '❌'} Header and CRLF line endings")
        return ok
    except Exception as e:
        print(f"❌ SIE export failed: {e}")
        return False


def check_vat_export():
    print("\nTesting /api/v1/export/vat with explicit boxes...")
    try:
        payload = {"year": YEAR, "period": f"Q4 {YEAR}", "boxes": {}}
        response = requests.post(f"{BASE_URL}/api/v1/export/vat", json=payload, headers=HEADERS)
        if response.status_code != 200:
            print(f"❌ VAT export failed with {response.status_code}")
            print(f"   Response: {response.text}")
            return False

        body = response.content.decode("iso-8859-1")
        ok = f"<Period>{YEAR}10</Period>" in body and "<Ruta49>0</Ruta49>" in body
        print(f"{'✅' if ok else '❌'} VAT export: period {YEAR}10, Ruta49 present")
        return ok
    except Exception as e:
        print(f"❌ VAT export failed: {e}")
        return False


def check_payment_export():
    print("\nTesting /api/v1/export/payment (LB)...")
    try:
        payload = {
            "format": "lb",
            "sender_bankgiro": "5050-1055",
            "sender_name": "Exempel AB",
            "execution_date": f"{YEAR}-12-20",
            "invoices": [
                {"id": "F1", "supplier_name": "Leverantör 1", "amount": 1000.00,
                 "bankgiro": "123-4566", "ocr": "4711"},
                {"id": "F2", "supplier_name": "Leverantör 2", "amount": 1500.00,
                 "bankgiro": "5555-5551", "invoice_number": "INV-2"},
                {"id": "F3", "supplier_name": "Leverantör 3", "amount": 2000.00,
                 "bankgiro": "5050-1055", "invoice_number": "INV-3"},
            ],
        }
        response = requests.post(f"{BASE_URL}/api/v1/export/payment", json=payload, headers=HEADERS)
        if response.status_code != 200:
            print(f"❌ Payment export failed with {response.status_code}")
            print(f"   Response: {response.text}")
            return False

        result = response.json()
        records = [line for line in result["content"].split("\r\n") if line]
        closing = records[-1]
        print(f"   File: {result['filename']}, {len(records)} records, skipped: {result['skipped']}")

        checks = {
            "record length": all(len(r) == 80 for r in records),
            "count": closing[12:19] == "0000003",
            "total": closing[19:31] == "000000450000",
        }
        for key, matches in checks.items():
            print(f"   {'✅' if matches else '❌'} {key}")
        return all(checks.values())
    except Exception as e:
        print(f"❌ Payment export failed: {e}")
        return False


def check_error_handling():
    print("\nTesting error handling (unknown VAT period)...")
    try:
        payload = {"year": YEAR, "period": "sommaren"}
        response = requests.post(f"{BASE_URL}/api/v1/export/vat", json=payload, headers=HEADERS)
        if response.status_code == 400:
            print(f"✅ Error handling working (got {response.status_code})")
            print(f"   Detail: {response.json().get('detail')}")
            return True
        else:
            print(f"❌ Error handling failed (got {response.status_code}, expected 400)")
            return False
    except Exception as e:
        print(f"❌ Error handling test failed: {e}")
        return False


if __name__ == "__main__":
    print("=" * 60)
    print("Ledger Export API Verification Script")
    print("=" * 60)

    results = {
        "Health check": check_health(),
        "SIE export": check_sie_export(),
        "VAT export": check_vat_export(),
        "Payment export": check_payment_export(),
        "Error handling": check_error_handling(),
    }

    print("\n" + "=" * 60)
    print("Summary:")
    for name, ok in results.items():
        print(f"  {name}: {'✅ PASS' if ok else '❌ FAIL'}")
    print("=" * 60)

    if not all(results.values()):
        sys.exit(1)

    print("\n✅ All checks passed!")
    sys.exit(0)
