from django.db import models


# ---------- Customer ----------
# Buys furniture on sales orders (AR side)
class Customer(models.Model):
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["name"], name="customer_name_idx")]

    def __str__(self):
        return self.name

    @property
    def contact(self):
        # phone first, then email, as shown on collection sheets
        return self.phone or self.email or "N/A"
