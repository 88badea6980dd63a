"""
Django admin configuration for businesses app.
"""
from django.contrib import admin
from .models import Business


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner_id', 'created_at']
    search_fields = ['name', 'owner_id']
    readonly_fields = ['id', 'created_at', 'updated_at']
    ordering = ['-created_at']
