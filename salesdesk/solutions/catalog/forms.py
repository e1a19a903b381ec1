from django import forms


class ProductForm(forms.Form):
    product_name = forms.CharField(max_length=200, label="Product Name")
    sku = forms.CharField(max_length=100, label="SKU")
    category = forms.ChoiceField(choices=())
    supplier = forms.CharField(required=False, max_length=200)
    price = forms.DecimalField(min_value=0, decimal_places=2)
    stock = forms.IntegerField(min_value=0)
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 4}))

    def __init__(self, *args, categories=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["category"].choices = [("", "Select a category")] + list(categories)

    def to_payload(self):
        # The products endpoint expects camelCase for the name field.
        data = self.cleaned_data
        return {
            "productName": data["product_name"],
            "sku": data["sku"],
            "category": data["category"],
            "supplier": data.get("supplier") or "",
            "price": str(data["price"]),
            "stock": str(data["stock"]),
            "description": data.get("description") or "",
        }
