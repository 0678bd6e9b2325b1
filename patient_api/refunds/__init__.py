"""
Refunds and brand refund requests.
"""
