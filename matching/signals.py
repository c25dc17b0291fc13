from django.dispatch import Signal

# Sent after the transaction that wrote a DomainEvent commits.
# kwargs: event (matching.models.DomainEvent)
domain_event_emitted = Signal()
