"""Leave accrual and balance engine for the HR portal."""
