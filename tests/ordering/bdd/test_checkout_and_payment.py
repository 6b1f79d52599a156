"""BDD tests for checkout and payment reconciliation."""

from pytest_bdd import scenarios

scenarios("features/checkout_and_payment.feature")
