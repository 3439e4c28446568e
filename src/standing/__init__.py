"""Academic standing: grade ledger, progression eligibility, registration and recovery plans."""

__version__ = "0.1.0"
