import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("gateway_payment_id", models.CharField(help_text="Gateway payment ID (pay_xxx)", max_length=64, unique=True)),
                ("order_id", models.CharField(blank=True, default="", help_text="Gateway order ID (order_xxx)", max_length=64)),
                ("user_email", models.EmailField(db_index=True, help_text="Email of the paying user", max_length=254)),
                ("user_id", models.CharField(blank=True, help_text="Application user ID", max_length=64, null=True)),
                ("amount", models.PositiveBigIntegerField(blank=True, help_text="Paid amount in smallest currency unit (paise)", null=True)),
                ("currency", models.CharField(default="INR", help_text="ISO 4217 currency code", max_length=3)),
                ("receipt", models.CharField(blank=True, help_text="Merchant receipt reference", max_length=64, null=True)),
                ("status", models.CharField(choices=[("verified", "Verified"), ("failed", "Failed")], db_index=True, default="verified", help_text="Verification status", max_length=16)),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("refund_id", models.CharField(help_text="Gateway refund ID (rfnd_xxx)", max_length=64, unique=True)),
                ("payment_id", models.CharField(db_index=True, help_text="Gateway payment ID being refunded", max_length=64)),
                ("amount", models.PositiveBigIntegerField(help_text="Refund amount in smallest currency unit (paise)")),
                ("currency", models.CharField(default="INR", help_text="ISO 4217 currency code", max_length=3)),
                ("status", django_fsm.FSMField(choices=[("PENDING", "Pending"), ("PROCESSED", "Processed"), ("FAILED", "Failed")], db_index=True, default="PENDING", help_text="Current refund status (managed by FSM)", max_length=16, protected=True)),
                ("speed_requested", models.CharField(choices=[("OPTIMUM", "Optimum"), ("NORMAL", "Normal")], default="OPTIMUM", help_text="Speed requested at initiation", max_length=16)),
                ("speed_processed", models.CharField(blank=True, choices=[("OPTIMUM", "Optimum"), ("NORMAL", "Normal")], help_text="Speed the gateway used to settle the refund", max_length=16, null=True)),
                ("user_email", models.EmailField(db_index=True, help_text="Email of the user receiving the refund", max_length=254)),
                ("user_id", models.CharField(blank=True, help_text="Application user ID", max_length=64, null=True)),
                ("processed_by", models.CharField(help_text="Admin email that initiated the refund, or 'system'", max_length=255)),
                ("reason", models.TextField(blank=True, help_text="Reason for the refund", null=True)),
                ("notes", models.TextField(blank=True, help_text="Free-form comment sent to the gateway", null=True)),
                ("receipt", models.CharField(blank=True, help_text="Merchant receipt reference", max_length=64, null=True)),
                ("processed_at", models.DateTimeField(blank=True, help_text="When the refund reached PROCESSED", null=True)),
                ("failed_at", models.DateTimeField(blank=True, help_text="When the refund reached FAILED", null=True)),
                ("acquirer_data", models.JSONField(blank=True, help_text="Acquirer references (arn, rrn) reported by the gateway", null=True)),
                ("batch_id", models.CharField(blank=True, help_text="Gateway settlement batch ID", max_length=64, null=True)),
                ("error_code", models.CharField(blank=True, help_text="Gateway error code if the refund failed", max_length=64, null=True)),
                ("error_description", models.TextField(blank=True, help_text="Gateway error description if the refund failed", null=True)),
            ],
            options={
                "verbose_name": "Refund",
                "verbose_name_plural": "Refunds",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["payment_id", "status"], name="payments_re_payment_4c1f0a_idx"),
                    models.Index(fields=["status", "created_at"], name="payments_re_status_8b2d7e_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="refund_amount_positive"),
                ],
            },
        ),
    ]
