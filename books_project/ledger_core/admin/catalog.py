from django.contrib import admin

from ..models import Account, Contact, HSNCode, Product, Tax


# Register `Contact` model
@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "contact_type", "email", "mobile", "city", "state")
    list_filter = ("contact_type", "state")
    search_fields = ("name", "email", "mobile")
    readonly_fields = ("created_by", "created_at", "updated_at")

    def save_model(self, request, obj, form, change):
        # remember who created the contact
        if not change and obj.created_by_id is None:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "product_type", "sales_price", "purchase_price",
                    "hsn_code", "category")
    list_filter = ("product_type", "category")
    search_fields = ("name", "hsn_code", "category")


@admin.register(HSNCode)
class HSNCodeAdmin(admin.ModelAdmin):
    list_display = ("code", "description", "category")
    search_fields = ("code", "description")


@admin.register(Tax)
class TaxAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "computation_method", "rate",
                    "applicable_on_sales", "applicable_on_purchase")
    list_filter = ("computation_method", "applicable_on_sales", "applicable_on_purchase")
    search_fields = ("name",)


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "account_type", "parent")
    list_filter = ("account_type",)
    search_fields = ("code", "name")
    ordering = ("code",)

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        return super().get_queryset(request).select_related("parent")
