"""
Customers module.

- Record store gateway (verb-dispatched /api/customers)
- Photo ingestion into the customer-photos container
- List filter/sort engine for the list view
- Form validation for the add/edit forms
"""
