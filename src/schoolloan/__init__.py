"""School asset lending.

Borrowers request items, staff approve, hand over and confirm returns.
Loans run for a fixed duration and lateness is computed when read.
"""

__version__ = "0.1.0"
