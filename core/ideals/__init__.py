"""
Ideal convergence core.

This package defines:
- Fingerprint / PossibleIdeal / Flag contracts
- Raw and derived features, including one_of
- The durable ideal store and its storage adapters
- The flag pipeline
- The feature manager facade and the convergence scorer
"""
