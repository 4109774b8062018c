from django import forms

DIRECTION_CHOICES = [
    ("asc", "Ascending"),
    ("desc", "Descending"),
]

class TableSortForm(forms.Form):
    sort = forms.CharField(required=False, max_length=64)
    dir = forms.ChoiceField(choices=DIRECTION_CHOICES, required=False)

    def __init__(self, *args, sortable_keys=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.sortable_keys = set(sortable_keys)

    def clean_sort(self):
        key = self.cleaned_data["sort"]
        if key and key not in self.sortable_keys:
            raise forms.ValidationError("Unknown sort column.")
        return key
