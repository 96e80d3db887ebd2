"""
OKR Progress Service

Computes key result progress, pace and forecasts, and rolls them up into
objectives and plans.
"""
