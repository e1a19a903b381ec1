# forms.py
from django import forms

from portal.roles import ROLE_DEFINITIONS, Role

ROLE_CHOICES = ROLE_DEFINITIONS


class LoginForm(forms.Form):
    email = forms.EmailField(widget=forms.EmailInput(attrs={"autocomplete": "email", "autofocus": True}))
    password = forms.CharField(widget=forms.PasswordInput(attrs={"autocomplete": "current-password"}))


class AdminUserCreationForm(forms.Form):
    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=6, widget=forms.PasswordInput)
    role = forms.ChoiceField(choices=ROLE_CHOICES, label="Role", initial=Role.SALES)

    def clean_name(self):
        value = self.cleaned_data["name"].strip()
        if not value:
            raise forms.ValidationError("Please enter a name.")
        return value

    def to_payload(self):
        return {
            "name": self.cleaned_data["name"],
            "email": self.cleaned_data["email"],
            "password": self.cleaned_data["password"],
            "role": self.cleaned_data["role"],
        }
