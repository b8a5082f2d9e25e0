from riderops.services.rider_service import RiderService, UpdateResult

__all__ = ['RiderService', 'UpdateResult']
