import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import settlement.models.payout


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                (
                    "total",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Order total in major currency units",
                        max_digits=14,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="NGN", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "commission_rate",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Commission rate snapshotted when the order was settled",
                        max_digits=5,
                        null=True,
                    ),
                ),
                (
                    "commission_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Platform commission taken at settlement",
                        max_digits=14,
                        null=True,
                    ),
                ),
                (
                    "seller_earning",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Amount credited to the seller at settlement",
                        max_digits=14,
                        null=True,
                    ),
                ),
                (
                    "refund_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Amount credited back to the customer, if any",
                        max_digits=14,
                        null=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("processing", "Processing"),
                            ("sent", "Sent"),
                            ("completed", "Completed"),
                            ("disputed", "Disputed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="processing",
                        help_text="Order lifecycle status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "escrow_status",
                    django_fsm.FSMField(
                        choices=[
                            ("none", "None"),
                            ("held", "Held"),
                            ("released", "Released"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="none",
                        help_text="Where the order's funds sit (managed by FSM, one-way)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payment_status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Gateway charge status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payment_reference",
                    models.CharField(
                        blank=True,
                        help_text="Paystack charge reference",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "customer_code",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Paystack customer code reported with the charge",
                        max_length=100,
                    ),
                ),
                ("payment_verified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_failure_reason",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Reason reported by the gateway for the last failed charge",
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                (
                    "sent_photo_url",
                    models.URLField(blank=True, default="", max_length=500),
                ),
                (
                    "auto_release_at",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="When escrow is released automatically if no dispute is open",
                        null=True,
                    ),
                ),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                (
                    "received_photo_url",
                    models.URLField(blank=True, default="", max_length=500),
                ),
                (
                    "auto_released",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the sweep, rather than the customer, completed the order",
                    ),
                ),
                ("disputed_at", models.DateTimeField(blank=True, null=True)),
                ("funds_released_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="User who bought the item",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_placed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="User who sells the item and receives the earnings",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["seller", "status"],
                        name="order_seller_status_idx",
                    ),
                    models.Index(
                        fields=["customer", "status"],
                        name="order_customer_status_idx",
                    ),
                    models.Index(
                        fields=["status", "escrow_status"],
                        name="order_status_escrow_idx",
                    ),
                    models.Index(
                        fields=["payment_status", "created_at"],
                        name="order_payment_created_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total__gt", 0)),
                        name="order_total_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Dispute",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                (
                    "dispute_type",
                    models.CharField(
                        choices=[
                            ("not_received", "Item not received"),
                            ("wrong_item", "Wrong item received"),
                            ("damaged", "Item damaged"),
                        ],
                        max_length=20,
                    ),
                ),
                ("description", models.TextField()),
                (
                    "photos",
                    models.JSONField(
                        blank=True, default=list, help_text="Evidence photo URLs"
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[("open", "Open"), ("resolved", "Resolved")],
                        db_index=True,
                        default="open",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "resolution",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("favor_customer", "Favor Customer"),
                            ("favor_seller", "Favor Seller"),
                            ("partial_refund", "Partial Refund"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                (
                    "refund_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Refund granted to the customer (partial_refund/favor_customer)",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("resolution_notes", models.TextField(blank=True, default="")),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "opened_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes_opened",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes",
                        to="settlement.order",
                    ),
                ),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes_resolved",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Dispute",
                "verbose_name_plural": "Disputes",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "open")),
                        fields=("order",),
                        name="one_open_dispute_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Payout amount in major currency units",
                        max_digits=14,
                    ),
                ),
                ("currency", models.CharField(default="NGN", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the payout (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "transfer_reference",
                    models.CharField(
                        default=settlement.models.payout.generate_transfer_reference,
                        editable=False,
                        help_text="Reference sent to Paystack with the transfer (PO-<hex>)",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "transfer_code",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Paystack transfer code (TRF_xxx)",
                        max_length=100,
                    ),
                ),
                (
                    "recipient_code",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Paystack transfer recipient (RCP_xxx)",
                        max_length=100,
                    ),
                ),
                ("bank_name", models.CharField(max_length=100)),
                ("bank_code", models.CharField(max_length=10)),
                ("account_number", models.CharField(max_length=10)),
                ("account_name", models.CharField(max_length=255)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "expected_processing_date",
                    models.DateField(
                        blank=True,
                        db_index=True,
                        help_text="Business day on which the scheduled job processes the payout",
                        null=True,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Provider reason if the payout failed or was reversed",
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Admin who processed the payout (null for the scheduled job)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payouts_processed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="Seller receiving the payout",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["seller", "status"],
                        name="payout_seller_status_idx",
                    ),
                    models.Index(
                        fields=["status", "expected_processing_date"],
                        name="payout_status_due_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payout_amount_positive",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("seller",),
                        name="one_pending_payout_per_seller",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutDestination",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                ("bank_name", models.CharField(max_length=100)),
                ("bank_code", models.CharField(max_length=10)),
                ("account_number", models.CharField(max_length=10)),
                ("account_name", models.CharField(max_length=255)),
                (
                    "recipient_code",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Cached Paystack transfer recipient (RCP_xxx)",
                        max_length=100,
                    ),
                ),
                (
                    "verified_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the account was last resolved against Paystack",
                        null=True,
                    ),
                ),
                (
                    "seller",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payout_destination",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout Destination",
                "verbose_name_plural": "Payout Destinations",
            },
        ),
        migrations.CreateModel(
            name="OrderMessage",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                ("is_system", models.BooleanField(default=False)),
                ("text", models.TextField()),
                (
                    "image_url",
                    models.URLField(blank=True, default="", max_length=500),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="settlement.order",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        help_text="Author of the message; null for system messages",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Order Message",
                "verbose_name_plural": "Order Messages",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["order", "created_at"],
                        name="order_message_order_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CommissionPolicy",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                (
                    "commission_rate",
                    models.DecimalField(decimal_places=4, max_digits=5),
                ),
                (
                    "minimum_payout_amount",
                    models.DecimalField(decimal_places=2, max_digits=14),
                ),
                ("payout_processing_days", models.PositiveSmallIntegerField()),
                ("auto_release_days", models.PositiveSmallIntegerField()),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Commission Policy",
                "verbose_name_plural": "Commission Policy",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("commission_rate__gte", 0), ("commission_rate__lte", 1)
                        ),
                        name="policy_commission_rate_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("minimum_payout_amount__gte", 0)),
                        name="policy_minimum_payout_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationLog",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                ("window_days", models.PositiveIntegerField()),
                ("checked", models.PositiveIntegerField(default=0)),
                ("issues_found", models.PositiveIntegerField(default=0)),
                ("details", models.JSONField(blank=True, default=list)),
            ],
            options={
                "verbose_name": "Reconciliation Log",
                "verbose_name_plural": "Reconciliation Logs",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                (
                    "event_key",
                    models.CharField(
                        help_text="Delivery identity - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Paystack event type (e.g., 'charge.success')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(
                        help_text="Full webhook payload from Paystack (JSON)"
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processing attempts"
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                    models.Index(
                        fields=["status", "retry_count"],
                        name="webhook_status_retry_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="FailedPayment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                    ),
                ),
                ("reference", models.CharField(db_index=True, max_length=255)),
                (
                    "amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Charged amount in major currency units, if reported",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("reason", models.TextField()),
                (
                    "customer_code",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="failed_payments",
                        to="settlement.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Failed Payment",
                "verbose_name_plural": "Failed Payments",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this entry was recorded",
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("sale", "Sale"),
                            ("commission", "Commission"),
                            ("refund", "Refund"),
                            ("payout", "Payout"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Signed amount in major currency units",
                        max_digits=14,
                    ),
                ),
                ("currency", models.CharField(default="NGN", max_length=3)),
                (
                    "commission",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Commission taken from the order (sale entries only)",
                        max_digits=14,
                    ),
                ),
                (
                    "commission_rate",
                    models.DecimalField(
                        blank=True, decimal_places=4, max_digits=5, null=True
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Identifier of service/user that created this entry",
                        max_length=255,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        help_text="Unique key to prevent duplicate entries",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="customer_ledger_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="settlement.order",
                    ),
                ),
                (
                    "payout",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="settlement.payout",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="seller_ledger_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["seller", "kind"],
                        name="ledger_seller_kind_idx",
                    ),
                    models.Index(
                        fields=["customer", "kind"],
                        name="ledger_customer_kind_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("seller__isnull", False),
                            ("customer__isnull", False),
                            _connector="OR",
                        ),
                        name="ledger_entry_has_party",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("commission__gte", 0)),
                        name="ledger_entry_commission_non_negative",
                    ),
                ],
            },
        ),
    ]
