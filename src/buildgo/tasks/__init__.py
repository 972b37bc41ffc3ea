"""Task modules live here.

Each module decorates its task functions with
`@orchestrator.task(name=..., dependencies=[...])`; the CLI imports every
module in this package and collects them.
"""
