from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """Attributable record of a state change made to a booking or payment."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPIRE = "EXPIRE"
    ACTIONS = [
        (CREATE, "Create"),
        (UPDATE, "Update"),
        (DELETE, "Delete"),
        (EXPIRE, "Expire"),
    ]

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    actor_label = models.CharField(max_length=120)
    action = models.CharField(max_length=12, choices=ACTIONS)
    table_name = models.CharField(max_length=60)
    record_id = models.CharField(max_length=64, blank=True)
    old_data = models.JSONField(null=True, blank=True)
    new_data = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=300, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["table_name", "record_id"], name="core_audit_table_record_idx")]

    def __str__(self):
        return f"{self.actor_label} {self.action} {self.table_name}#{self.record_id}"
