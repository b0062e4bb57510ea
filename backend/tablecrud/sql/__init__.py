"""Parameterized statement construction."""
