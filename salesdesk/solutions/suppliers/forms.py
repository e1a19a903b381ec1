from django import forms


class SupplierForm(forms.Form):
    company_name = forms.CharField(max_length=200)
    contact_person = forms.CharField(required=False, max_length=200)
    gst = forms.CharField(required=False, max_length=30, label="GST")
    address = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}))
    email_address = forms.EmailField(label="Email Address")
    phone_number = forms.CharField(required=False, max_length=30)
    website_url = forms.URLField(required=False, label="Website URL")
    products_services = forms.CharField(required=False, widget=forms.Textarea(attrs={"rows": 3}), label="Products / Services")

    def to_payload(self):
        # The suppliers endpoint takes camelCase keys.
        data = self.cleaned_data
        return {
            "companyName": data["company_name"],
            "contactPerson": data.get("contact_person") or "",
            "gst": data.get("gst") or "",
            "address": data.get("address") or "",
            "emailAddress": data["email_address"],
            "phoneNumber": data.get("phone_number") or "",
            "websiteUrl": data.get("website_url") or "",
            "productsServices": data.get("products_services") or "",
        }
