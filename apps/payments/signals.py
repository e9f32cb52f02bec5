from django.dispatch import Signal

# Sent after a settlement has committed. Receivers get ``event``, the LedgerEvent row.
job_settled = Signal()
