"""
Credscore — Signal Lookup Layer
One async evaluator per signal name: (target) -> raw number.
"""
