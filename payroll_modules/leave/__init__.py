"""Leave types and leave balances."""
