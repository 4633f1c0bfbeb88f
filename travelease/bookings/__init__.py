"""
Module 'bookings' (feature-first): réservations hôtel/vol et leur état de paiement.
- repository: accès Supabase (table bookings, contrainte UNIQUE sur payment_reference)
- idempotency: une référence de paiement -> une seule réservation
- state_machine: transitions légales de (status, payment_status)
- service / views: cas d'usage et endpoints /api/v1/bookings
"""
