"""Lottery ticket purchase engine.

Price bulk ticket purchases, validate the requested quantity against the
buyer's balance and the per-transaction cap, and drive the
approve-then-confirm transaction flow against the lottery contract.
"""
