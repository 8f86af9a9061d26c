from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    # Requests
    path('requests/', views.ride_requests, name='ride-requests'),
    path('requests/<int:request_id>/', views.ride_request_detail, name='ride-request-detail'),
    path('compensation-estimate/', views.compensation_estimate, name='compensation-estimate'),

    # Drafts & proposals
    path('drafts/', views.draft_ride, name='draft-ride'),
    path('proposals/<int:proposal_id>/', views.proposal_detail, name='proposal-detail'),
    path('proposals/<int:proposal_id>/confirm/', views.confirm_proposal, name='confirm-proposal'),

    # Rides
    path('history/', views.ride_history, name='ride-history'),
    path('<int:ride_id>/', views.ride_summary, name='ride-summary'),
    path('<int:ride_id>/route/', views.ride_route, name='ride-route'),
    path('<int:ride_id>/visit/', views.mark_request_visited, name='mark-visited'),
    path('<int:ride_id>/complete/', views.complete_ride, name='complete-ride'),
]
