"""
Request validation for the JSON views.

Field names follow the camelCase keys of the HTTP API.
"""

from django import forms
from django.utils.translation import gettext_lazy as _

from equipstock.models.enums import MovementType, UnitStatus


class AvailabilityQueryForm(forms.Form):
    startDate = forms.DateField(error_messages={'required': _('startDate e endDate são obrigatórios')})
    endDate = forms.DateField(error_messages={'required': _('startDate e endDate são obrigatórios')})
    quantity = forms.IntegerField(min_value=1, required=False)
    excludeBookingId = forms.IntegerField(required=False)

    def clean_quantity(self):
        return self.cleaned_data.get('quantity') or 1


class MovementForm(forms.Form):
    type = forms.ChoiceField(choices=MovementType.choices)
    quantity = forms.IntegerField(
        min_value=1,
        error_messages={'min_value': _('Quantidade deve ser maior que zero')},
    )
    reason = forms.CharField(max_length=500, required=False)
    bookingId = forms.IntegerField(required=False)
    idempotencyKey = forms.CharField(max_length=100, required=False)


class MovementHistoryForm(forms.Form):
    type = forms.ChoiceField(choices=MovementType.choices, required=False)
    startDate = forms.DateField(required=False)
    endDate = forms.DateField(required=False)
    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, required=False)


class AdjustmentForm(forms.Form):
    newTotalStock = forms.IntegerField(
        min_value=0,
        error_messages={'min_value': _('Estoque não pode ser negativo')},
    )
    reason = forms.CharField(
        max_length=400,
        error_messages={'required': _('Motivo do ajuste é obrigatório')},
    )


class UnitForm(forms.Form):
    """Unit creation; with ``partial=True`` every field becomes optional (PUT)."""

    serialNumber = forms.CharField(
        max_length=100,
        error_messages={'required': _('Número de série é obrigatório')},
    )
    internalCode = forms.CharField(max_length=50, required=False)
    status = forms.ChoiceField(choices=UnitStatus.choices, required=False)
    acquisitionDate = forms.DateField(required=False)
    acquisitionCost = forms.DecimalField(max_digits=12, decimal_places=2, required=False)
    warrantyExpiry = forms.DateField(required=False)
    notes = forms.CharField(required=False)

    FIELD_MAP = {
        'serialNumber': 'serial_number',
        'internalCode': 'internal_code',
        'status': 'status',
        'acquisitionDate': 'acquisition_date',
        'acquisitionCost': 'acquisition_cost',
        'warrantyExpiry': 'warranty_expiry',
        'notes': 'notes',
    }
    TEXT_FIELDS = ('internalCode', 'notes')

    def __init__(self, *args, partial=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.partial = partial
        if partial:
            for field in self.fields.values():
                field.required = False

    def unit_fields(self) -> dict:
        """
        Cleaned values keyed by model field.

        Partial forms only return the keys present in the submitted data.
        """
        result = {}
        for key, name in self.FIELD_MAP.items():
            if self.partial and key not in self.data:
                continue
            value = self.cleaned_data.get(key)
            if key in self.TEXT_FIELDS and value is None:
                value = ''
            if key in ('serialNumber', 'status') and not value:
                continue
            result[name] = value
        return result


class RescheduleForm(forms.Form):
    startDate = forms.DateField()
    endDate = forms.DateField()


class ReturnItemForm(forms.Form):
    bookingItemId = forms.IntegerField(error_messages={'required': _('Item é obrigatório')})
    returnedQty = forms.IntegerField(
        min_value=0,
        error_messages={'min_value': _('Quantidade devolvida não pode ser negativa')},
    )
    damagedQty = forms.IntegerField(
        min_value=0,
        error_messages={'min_value': _('Quantidade avariada não pode ser negativa')},
    )
    damageNotes = forms.CharField(required=False)


class ReturnBookingForm(forms.Form):
    notes = forms.CharField(required=False)
