"""Application layer module.

Contains the order write workflow, the query and response builders, and
the coupon and customer services. Import services from their modules; the
infrastructure stores depend on ``storeapi.application.ports``.
"""
