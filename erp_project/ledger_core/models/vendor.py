from django.db import models


class Vendor(models.Model):  # Mirrors Customer but for Accounts Payable (AP)
    name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["name"], name="vendor_name_idx")]

    def __str__(self):
        return self.name

    @property
    def contact(self):
        return self.phone or self.email or "N/A"
