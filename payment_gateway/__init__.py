"""
Payment gateway integrations.

Packages:
- razorpay: resilient Razorpay mandate operations (customers, tokens,
  orders, recurring charges, webhooks)
"""
