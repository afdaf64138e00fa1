"""Review state reconciliation engine.

Raw protocol records (legacy single-reviewer or current multi-reviewer,
flat or month/week layout) are turned into canonical ``Protocol`` values
by ``normalizer.normalize``.  Everything else in this package works on
those canonical values:

- ``identity``     — loose reviewer identity matching
- ``temporal``     — overdue / due-soon policy
- ``due_dates``    — representative due date per protocol
- ``status``       — aggregate protocol status
- ``forms``        — form codes to display names
- ``periods``      — release period ordering and file-name parsing
- ``catalog``      — loading and filtering protocols from a store
- ``reassignment`` — atomic reviewer reassignment
- ``workflow``     — atomic completion / reopen of an assignment
- ``reports``      — cross-protocol dashboard views
"""
