"""
Django admin configuration for core app.
"""
from django.contrib import admin


# Customize admin site header and title
admin.site.site_header = "Business Access Administration"
admin.site.site_title = "Business Access Admin"
admin.site.index_title = "Businesses, memberships and audit trail"
