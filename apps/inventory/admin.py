from django.contrib import admin

from .models import EquipmentItem, Reservation


@admin.register(EquipmentItem)
class EquipmentItemAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "status", "updated_at")
    list_filter = ("status", "category")
    search_fields = ("name", "category")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("equipment", "booking", "date", "start_time", "end_time")
    list_filter = ("date",)
    search_fields = ("equipment__name", "booking__event_name")
    raw_id_fields = ("booking",)
