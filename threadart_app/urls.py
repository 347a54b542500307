# threadart_app/urls.py

from django.urls import path
from .views import (
    home,
    frame_preview,
    start_job,
    stream_logs,
    stream_results,
    stop_job,
    download_csv,
    download_png,
)

urlpatterns = [
    path('', home, name='home'),
    path('frame-preview/', frame_preview, name='frame_preview'),
    path('jobs/', start_job, name='start_job'),
    path('stream-logs/', stream_logs, name='stream_logs'),
    path('stream-results/', stream_results, name='stream_results'),
    path('stop-job/<uuid:job_id>/', stop_job, name='stop_job'),
    path('jobs/<uuid:job_id>/pattern.csv', download_csv, name='download_csv'),
    path('jobs/<uuid:job_id>/preview.png', download_png, name='download_png'),
]
