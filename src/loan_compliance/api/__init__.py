"""HTTP surface of the Loan Document Compliance System."""
