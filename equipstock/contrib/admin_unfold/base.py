"""
Base classes for Unfold admin in Equipstock.

Provides BaseModelAdmin and BaseTabularInline with compact textareas
(notes, reasons, JSON metadata) and the date formats used in list views.
"""

from django import forms
from django.contrib.admin.widgets import AdminTextareaWidget
from unfold.admin import ModelAdmin, TabularInline
from unfold.widgets import UnfoldAdminTextareaWidget

TEXTAREA_WIDGETS = (forms.Textarea, AdminTextareaWidget, UnfoldAdminTextareaWidget)


def format_datetime(dt) -> str:
    """Format datetime as DD/MM/AA · HH:MM."""
    if dt:
        return dt.strftime('%d/%m/%y · %H:%M')
    return '-'


def format_date(d) -> str:
    """Format date as DD/MM/AA."""
    if d:
        return d.strftime('%d/%m/%y')
    return '-'


def compact_textareas(base_fields, max_width=None) -> None:
    """Halve the rows of every textarea widget; optionally cap its width."""
    for field in base_fields.values():
        widget = field.widget
        if not isinstance(widget, TEXTAREA_WIDGETS):
            continue

        try:
            rows = int(widget.attrs.get('rows', 4))
        except (ValueError, TypeError):
            rows = 4
        widget.attrs['rows'] = max(2, rows // 2)

        if max_width:
            style = [
                s for s in widget.attrs.get('style', '').split(';')
                if s.strip() and 'width' not in s.lower()
            ]
            style.append(f'width: 100%; max-width: {max_width}')
            widget.attrs['style'] = '; '.join(s.strip() for s in style)


class BaseTabularInline(TabularInline):
    """TabularInline base: compact textareas in inline rows."""

    def get_formset(self, request, obj=None, **kwargs):
        formset = super().get_formset(request, obj, **kwargs)
        compact_textareas(formset.form.base_fields)
        return formset


class BaseModelAdmin(ModelAdmin):
    """
    ModelAdmin base with sensible defaults.

    - Compressed fieldsets and unsaved-form warning
    - Textareas at half height and at most 42rem wide
    """

    compressed_fields = True
    warn_unsaved_form = True

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        compact_textareas(form.base_fields, max_width='42rem')
        return form
