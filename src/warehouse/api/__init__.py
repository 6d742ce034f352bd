from warehouse.api.routes import activity_router, inventory_router, job_router, location_router

__all__ = ["inventory_router", "location_router", "job_router", "activity_router"]
