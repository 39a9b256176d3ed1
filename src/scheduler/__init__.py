"""Background schedulers.

Schedule overview (intervals configurable, see src.config):
  - every 5 min - Cashback maturation and expired reserve cleanup
  - every 5 min - Offer / contest activation and expiry
  - every 3 min - Broadcast push notification (disabled by default)
"""
