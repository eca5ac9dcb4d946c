"""SmartBills notifications backend."""
