"""
Member
---------------------------
"""

from tortoise import Model, fields


class Member(Model):
    """
    Represents a registered customer with a prepaid balance.
    """

    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=255)
    phone = fields.CharField(max_length=32, null=True)

    balance = fields.DecimalField(max_digits=16, decimal_places=6, default=0)
    """The prepaid balance. Never negative."""

    def serialize(self):
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "balance": self.balance
        }

    def __str__(self):
        return f"[{self.id}] {self.name}"
