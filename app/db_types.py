"""Column types shared by the GST models; valid on SQLite and PostgreSQL."""
from sqlalchemy import JSON, Numeric, Uuid

# Report bodies and GSP request/response payloads
JSONType = JSON

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid

# Rupee amounts on statement lines, two decimal places
MoneyType = Numeric(14, 2)

# Annual turnover can exceed the invoice-amount precision
TurnoverType = Numeric(16, 2)

# Percent, e.g. composition rate 1.00
RateType = Numeric(5, 2)
