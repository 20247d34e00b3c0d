"""
Augury - The submit/confirm/verify harness.

Poller, event reconciler and the orchestrator that drives every write
through simulate -> submit -> confirm.
"""
