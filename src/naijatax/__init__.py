"""NaijaTax: Nigerian tax estimation with a live rule engine."""
