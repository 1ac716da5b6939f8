"""Core storefront primitives.

Storage slots, observable state holders, configuration and the small
validation and HTTP helpers shared by the services. Nothing in here knows
about carts or orders.
"""
