"""CleanRoute Fulfillment Service."""
