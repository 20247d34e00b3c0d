"""
Rites - Command implementations for the Tessera harness.

Each module backs one or more top-level CLI commands:
- deploy:     Deploy a compiled contract
- call:       Simulate, submit and confirm a call; plain state reads
- reconcile:  Compare an event-field sum against contract state
- scenario:   The Counter conservation check
"""
