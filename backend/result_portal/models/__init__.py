from result_portal.models.result import Result

__all__ = ["Result"]
