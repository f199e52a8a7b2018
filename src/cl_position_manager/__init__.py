"""
Concentrated-Liquidity Position Manager

Lifecycle management for a single concentrated-liquidity position:
opening, topping up, collecting, rebalancing and compounding, with the
tick and yield math used to size and centre it.
"""

__version__ = "0.1.0"
__author__ = "Trading Team"
