"""CO/PO attainment calculation engine."""
