"""
Bookkeeping models for source adapters.
"""
from django.db import models
from apps.core.models import TimeStampedModel


class RawAPIResponse(TimeStampedModel):
    """
    Audit trail of every upstream call (the body itself is not kept).
    """
    source = models.CharField(max_length=50, db_index=True)
    endpoint = models.CharField(max_length=200)

    # Request details
    params = models.JSONField(default=dict)

    # Response details
    status_code = models.IntegerField()
    response_time_ms = models.IntegerField(null=True)

    # Error tracking
    is_error = models.BooleanField(default=False)
    error_message = models.TextField(blank=True)

    class Meta:
        verbose_name = 'Raw API Response'
        verbose_name_plural = 'Raw API Responses'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['source', '-created_at']),
            models.Index(fields=['is_error']),
        ]

    def __str__(self):
        return f"{self.source} - {self.endpoint} [{self.status_code}] - {self.created_at}"


class AdapterStatus(models.Model):
    """
    Health counters for one source adapter.
    """
    source = models.CharField(max_length=50, unique=True, db_index=True)
    is_active = models.BooleanField(default=True)

    last_success_at = models.DateTimeField(null=True, blank=True)
    last_failure_at = models.DateTimeField(null=True, blank=True)
    consecutive_failures = models.IntegerField(default=0)
    total_requests = models.IntegerField(default=0)
    total_failures = models.IntegerField(default=0)

    status_message = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Adapter Status'
        verbose_name_plural = 'Adapter Statuses'
        ordering = ['source']

    def __str__(self):
        status = "Active" if self.is_active else "Inactive"
        return f"{self.source} - {status}"

    @property
    def success_rate(self):
        """Success rate as a percentage."""
        if self.total_requests == 0:
            return 0
        return ((self.total_requests - self.total_failures) / self.total_requests) * 100

    @property
    def is_healthy(self):
        return (
            self.is_active and
            self.consecutive_failures < 5 and
            self.success_rate > 80
        )
