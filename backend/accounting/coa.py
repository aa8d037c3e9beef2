# accounting/coa.py
"""
Default chart of accounts templates by business type.

Numbering:
    1xxx assets, 2xxx liabilities, 3xxx equity, 4xxx revenue,
    5xxx cost of sales, 6xxx operating expenses,
    7xxx other income, 8xxx other expenses
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class TemplateAccount:
    code: str
    name: str
    account_type: str
    parent_code: Optional[str] = None
    description: str = ""


A = TemplateAccount

COMMON_ACCOUNTS = [
    A("1-1000", "Kas & Bank", "cash_bank"),
    A("1-1001", "Kas", "cash_bank", "1-1000", "Uang tunai"),
    A("1-1002", "Kas Kecil", "cash_bank", "1-1000", "Petty cash"),
    A("1-1100", "Bank BCA", "cash_bank", "1-1000"),
    A("1-1101", "Bank Mandiri", "cash_bank", "1-1000"),

    A("1-2000", "Aset Lancar", "asset"),
    A("1-2100", "Piutang Usaha", "asset", "1-2000", "Accounts receivable"),
    A("1-2101", "Cadangan Kerugian Piutang", "asset", "1-2000", "Allowance for doubtful accounts"),
    A("1-2300", "Uang Muka Pembelian", "asset", "1-2000", "Supplier advances"),
    A("1-2400", "Biaya Dibayar Dimuka", "asset", "1-2000", "Prepaid expenses"),
    A("1-2500", "PPN Masukan", "asset", "1-2000", "VAT in"),

    A("1-3000", "Aset Tetap", "asset"),
    A("1-3200", "Bangunan", "asset", "1-3000"),
    A("1-3201", "Akumulasi Penyusutan Bangunan", "asset", "1-3000"),
    A("1-3400", "Peralatan & Mesin", "asset", "1-3000", "Equipment"),
    A("1-3401", "Akumulasi Penyusutan Peralatan", "asset", "1-3000", "Accumulated depreciation"),

    A("2-1000", "Kewajiban Lancar", "liability"),
    A("2-1100", "Hutang Usaha", "liability", "2-1000", "Accounts payable"),
    A("2-1300", "Uang Muka Penjualan", "liability", "2-1000", "Customer deposits"),
    A("2-1500", "Hutang Gaji", "liability", "2-1000"),
    A("2-1600", "PPN Keluaran", "liability", "2-1000", "Output tax"),
    A("2-1601", "Hutang PPh 21", "liability", "2-1000"),
    A("2-2000", "Kewajiban Jangka Panjang", "liability"),
    A("2-2100", "Hutang Bank", "liability", "2-2000", "Bank loan"),

    A("3-1000", "Modal", "equity"),
    A("3-1100", "Modal Disetor", "equity", "3-1000", "Paid-in capital"),
    A("3-2000", "Laba Ditahan", "equity"),
    A("3-2100", "Laba Ditahan Tahun Lalu", "equity", "3-2000"),
    A("3-2200", "Laba Tahun Berjalan", "equity", "3-2000"),

    A("6-1000", "Beban Operasional", "expense"),
    A("6-1100", "Beban Gaji & Upah", "expense", "6-1000", "Salaries & wages"),
    A("6-1200", "Beban Sewa", "expense", "6-1000", "Rent expense"),
    A("6-1300", "Beban Listrik & Air", "expense", "6-1000", "Utilities"),
    A("6-2000", "Beban Penyusutan", "expense", "6-1000", "Depreciation expense"),
    A("6-2400", "Beban Kerugian Piutang", "expense", "6-1000", "Bad debt expense"),

    A("7-1000", "Pendapatan Lain-lain", "revenue"),
    A("7-1100", "Pendapatan Bunga", "revenue", "7-1000", "Interest income"),
    A("8-1000", "Beban Lain-lain", "expense"),
    A("8-1100", "Beban Bunga", "expense", "8-1000", "Interest expense"),
    A("8-1200", "Beban Administrasi Bank", "expense", "8-1000", "Bank charges"),
]

TRADING_ACCOUNTS = [
    A("1-2600", "Persediaan Barang Dagangan", "asset", "1-2000", "Merchandise inventory"),
    A("4-1000", "Pendapatan Penjualan", "revenue"),
    A("4-1100", "Penjualan Barang Dagangan", "revenue", "4-1000", "Sales revenue"),
    A("4-1200", "Diskon Penjualan", "revenue", "4-1000", "Sales discount (contra)"),
    A("4-1300", "Retur Penjualan", "revenue", "4-1000", "Sales returns (contra)"),
    A("5-1000", "Harga Pokok Penjualan", "expense", None, "Cost of goods sold"),
    A("5-1100", "Harga Pokok Barang Terjual", "expense", "5-1000", "COGS"),
    A("5-1400", "Ongkos Angkut Pembelian", "expense", "5-1000", "Freight-in"),
]

SERVICE_ACCOUNTS = [
    A("1-2600", "Persediaan Bahan", "asset", "1-2000", "Supplies inventory"),
    A("4-1000", "Pendapatan Jasa", "revenue"),
    A("4-1100", "Pendapatan Jasa Utama", "revenue", "4-1000", "Service revenue"),
    A("4-1400", "Diskon Pendapatan Jasa", "revenue", "4-1000", "Service discount (contra)"),
    A("5-1000", "Biaya Langsung Jasa", "expense", None, "Direct cost of services"),
    A("5-1100", "Harga Pokok Jasa", "expense", "5-1000", "Cost of services"),
    A("5-1200", "Biaya Subkontraktor", "expense", "5-1000"),
]

MANUFACTURING_ACCOUNTS = [
    A("1-2600", "Persediaan Bahan Baku", "asset", "1-2000", "Raw materials inventory"),
    A("1-2700", "Barang Dalam Proses", "asset", "1-2000", "Work in process"),
    A("1-2800", "Persediaan Barang Jadi", "asset", "1-2000", "Finished goods inventory"),
    A("4-1000", "Pendapatan Penjualan", "revenue"),
    A("4-1100", "Penjualan Barang Jadi", "revenue", "4-1000", "Sales revenue"),
    A("4-1200", "Diskon Penjualan", "revenue", "4-1000", "Sales discount (contra)"),
    A("5-1000", "Harga Pokok Produksi", "expense", None, "Cost of goods manufactured"),
    A("5-1100", "Harga Pokok Barang Terjual", "expense", "5-1000", "COGS"),
    A("5-2000", "Biaya Overhead Pabrik", "expense"),
    A("5-2100", "Tenaga Kerja Tidak Langsung", "expense", "5-2000"),
]

COMMON_ROLES = {
    "cash": "1-1001",
    "receivable": "1-2100",
    "supplier_advance": "1-2300",
    "fixed_asset": "1-3400",
    "accumulated_depreciation": "1-3401",
    "payable": "2-1100",
    "customer_deposit": "2-1300",
    "tax": "2-1600",
    "revenue": "4-1100",
    "cogs": "5-1100",
    "inventory": "1-2600",
    "depreciation_expense": "6-2000",
}

TEMPLATES = {
    "trading": (TRADING_ACCOUNTS, {**COMMON_ROLES, "discount": "4-1200"}),
    "service": (SERVICE_ACCOUNTS, {**COMMON_ROLES, "discount": "4-1400"}),
    "manufacturing": (MANUFACTURING_ACCOUNTS, {**COMMON_ROLES, "discount": "4-1200", "inventory": "1-2800"}),
}


def get_default_chart(business_type: str) -> List[TemplateAccount]:
    """Template accounts for ``business_type``, parents before children."""
    industry, _ = TEMPLATES.get(business_type, TEMPLATES["trading"])
    accounts = sorted(COMMON_ACCOUNTS + industry, key=lambda a: a.code)
    headers = [a for a in accounts if a.parent_code is None]
    children = [a for a in accounts if a.parent_code is not None]
    return headers + children


def get_default_roles(business_type: str) -> Dict[str, str]:
    _, roles = TEMPLATES.get(business_type, TEMPLATES["trading"])
    return dict(roles)
