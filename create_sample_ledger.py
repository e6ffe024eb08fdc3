#!/usr/bin/env python3
"""Create a sample ledger workbook for the export API (STORE_PATH=sample_ledger.xlsx)"""
import pandas as pd

# One row per journal line, grouped on verification_id
journal_lines = [
    # A1: Försäljning 25% moms
    {"verification_id": "A1", "date": "2024-10-05", "series": "A", "number": 1,
     "description": "Försäljning konsulttjänst", "account": "1930", "account_name": "Företagskonto",
     "debit": 12500.00, "credit": 0.00},
    {"verification_id": "A1", "date": "2024-10-05", "series": "A", "number": 1,
     "description": "Försäljning konsulttjänst", "account": "3001", "account_name": "Försäljning 25%",
     "debit": 0.00, "credit": 10000.00},
    {"verification_id": "A1", "date": "2024-10-05", "series": "A", "number": 1,
     "description": "Försäljning konsulttjänst", "account": "2611", "account_name": "Utgående moms 25%",
     "debit": 0.00, "credit": 2500.00},
    # A2: Inköp med avdragsgill moms
    {"verification_id": "A2", "date": "2024-11-12", "series": "A", "number": 2,
     "description": "Programvarulicens", "account": "5420", "account_name": "Programvaror",
     "debit": 2000.00, "credit": 0.00},
    {"verification_id": "A2", "date": "2024-11-12", "series": "A", "number": 2,
     "description": "Programvarulicens", "account": "2641", "account_name": "Ingående moms",
     "debit": 500.00, "credit": 0.00},
    {"verification_id": "A2", "date": "2024-11-12", "series": "A", "number": 2,
     "description": "Programvarulicens", "account": "1930", "account_name": "Företagskonto",
     "debit": 0.00, "credit": 2500.00},
]

company = [{
    "name": "Exempel AB",
    "org_number": "556183-9191",
    "fiscal_year_start": "01-01",
    "fiscal_year_end": "12-31",
    "address": "Storgatan 1",
    "zip_code": "11122",
    "city": "Stockholm",
    "contact_person": "Anna Andersson",
    "email": "ekonomi@exempel.se",
}]

# Föregående års utgående saldon, debet positivt
balances = [
    {"account_number": "1930", "account_name": "Företagskonto", "balance": 50000.00, "year": 2023},
    {"account_number": "2081", "account_name": "Aktiekapital", "balance": -50000.00, "year": 2023},
]

output_file = "sample_ledger.xlsx"
with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
    pd.DataFrame(journal_lines).to_excel(writer, sheet_name="verifikationer", index=False)
    pd.DataFrame(company).to_excel(writer, sheet_name="foretag", index=False)
    pd.DataFrame(balances).to_excel(writer, sheet_name="saldon", index=False)

print(f"✅ Created sample ledger: {output_file}")
print(f"   Journal lines: {len(journal_lines)}")
print(f"   Verifications: {len({line['verification_id'] for line in journal_lines})}")
