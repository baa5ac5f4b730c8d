"""
Standard type definitions for database models.

Provides consistent types for monetary and percentage fields across all models.
"""

from sqlalchemy import BigInteger, Numeric

# Money in the smallest currency unit (VND), integers only
# Range: up to 9,223,372,036,854,775,807
MoneyType = BigInteger

# Whole or fractional percentage, 0.00 to 100.00
# Suitable for: commission rates, customer retention
PercentType = Numeric(5, 2)

# Share multiplier applied per 1M VND (e.g. 1.0, 0.0)
MultiplierType = Numeric(10, 4)

# KPI points (card_sales * 5 + retention)
PointsType = Numeric(12, 2)
