from django import forms

from .filters import ALL, DATE_RANGE_OPTIONS
from .lifecycle import TicketStatus
from .records import TicketPriority, TicketType


class TicketForm(forms.Form):
    """Base for the three ticket forms; payloads go out in snake_case."""

    ticket_type = None
    title = ""

    priority = forms.ChoiceField(choices=TicketPriority.choices, initial=TicketPriority.MEDIUM)

    def to_payload(self):
        payload = {}
        for name, value in self.cleaned_data.items():
            if value in (None, ""):
                continue
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            payload[name] = str(value)
        return payload


class NewProductTicketForm(TicketForm):
    ticket_type = TicketType.NEW_PRODUCT
    title = "Create Ticket – New Product"

    product_name = forms.CharField(max_length=200, label="Product Name")
    subject = forms.CharField(max_length=200)
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 4}))
    expected_new_price = forms.DecimalField(required=False, min_value=0, decimal_places=2, label="Expected Price")
    total_expected_price = forms.DecimalField(required=False, min_value=0, decimal_places=2)
    preferred_supplier = forms.CharField(required=False, max_length=200)
    expected_delivery_date = forms.DateField(
        required=False,
        widget=forms.DateInput(attrs={"type": "date"}),
    )
    assigned_to = forms.CharField(required=False, max_length=200, label="Assign To")

    field_order = [
        "product_name",
        "subject",
        "description",
        "expected_new_price",
        "total_expected_price",
        "preferred_supplier",
        "expected_delivery_date",
        "assigned_to",
        "priority",
    ]

    def clean_product_name(self):
        value = self.cleaned_data["product_name"].strip()
        if not value:
            raise forms.ValidationError("Please enter a product name.")
        return value

    def clean_subject(self):
        value = self.cleaned_data["subject"].strip()
        if not value:
            raise forms.ValidationError("Please enter a subject.")
        return value


class ExistingProductTicketForm(TicketForm):
    ticket_type = TicketType.EXISTING_PRODUCT
    title = "Create Ticket – Existing Product"

    product_id = forms.CharField(max_length=100, label="Product ID")
    current_product_name = forms.CharField(max_length=200)
    quantity = forms.IntegerField(required=False, min_value=1)
    reason_for_update = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))
    fields_to_modify = forms.CharField(required=False, max_length=500)
    expected_new_price = forms.DecimalField(required=False, min_value=0, decimal_places=2)

    field_order = [
        "product_id",
        "current_product_name",
        "quantity",
        "reason_for_update",
        "fields_to_modify",
        "expected_new_price",
        "priority",
    ]


class BulkOrderTicketForm(TicketForm):
    ticket_type = TicketType.BULK_ORDER
    title = "Create Ticket – Bulk Order"

    product_id = forms.CharField(max_length=200, label="Product Name/SKU")
    quantity = forms.IntegerField(min_value=1)
    expected_unit_price = forms.DecimalField(required=False, min_value=0, decimal_places=2)
    total_expected_price = forms.DecimalField(required=False, min_value=0, decimal_places=2)
    preferred_supplier = forms.CharField(required=False, max_length=200)
    delivery_date = forms.DateField(required=False, widget=forms.DateInput(attrs={"type": "date"}))
    reason_for_bulk_order = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))

    field_order = [
        "product_id",
        "quantity",
        "expected_unit_price",
        "total_expected_price",
        "preferred_supplier",
        "delivery_date",
        "reason_for_bulk_order",
        "priority",
    ]

    def clean_product_id(self):
        value = self.cleaned_data["product_id"].strip()
        if not value:
            raise forms.ValidationError("Please enter a product name or SKU.")
        return value


TICKET_FORMS = {
    form.ticket_type: form
    for form in (NewProductTicketForm, ExistingProductTicketForm, BulkOrderTicketForm)
}


class TicketResponseForm(forms.Form):
    title = forms.CharField(max_length=200)
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 4}))


class TicketListFilterForm(forms.Form):
    q = forms.CharField(required=False)
    ticket_type = forms.ChoiceField(
        required=False,
        choices=[(ALL, "All types")] + TicketType.choices,
    )
    status = forms.ChoiceField(
        required=False,
        choices=[(ALL, "All statuses")] + TicketStatus.choices,
    )
    page = forms.IntegerField(required=False, min_value=1)


class AdminTicketFilterForm(TicketListFilterForm):
    date_range = forms.ChoiceField(required=False, choices=DATE_RANGE_OPTIONS)
