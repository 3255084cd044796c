"""Store REST API.

Order, coupon and customer resources served over FastAPI.
"""
