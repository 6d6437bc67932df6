"""Initial schema - profiles, letters, purchases, scheduled emails, session backups, check-ins

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Profiles
    # ==========================================================================
    op.execute('''
        CREATE TABLE profiles (
            id UUID PRIMARY KEY,
            email VARCHAR(255),
            display_name VARCHAR(255),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    # ==========================================================================
    # Letters
    # ==========================================================================
    op.execute('''
        CREATE TABLE letters (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            mode VARCHAR(50) NOT NULL DEFAULT 'general',
            tone VARCHAR(20) NOT NULL DEFAULT 'warm',
            questions JSON NOT NULL DEFAULT '[]',
            letter_content TEXT NOT NULL,
            word_count INTEGER NOT NULL DEFAULT 0,
            delivery_status VARCHAR(20) NOT NULL DEFAULT 'immediate',
            is_future_letter BOOLEAN NOT NULL DEFAULT false,
            delivery_date TIMESTAMPTZ,
            delivered_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_letters_user_created ON letters (user_id, created_at)')

    # ==========================================================================
    # Purchases
    # ==========================================================================
    op.execute('''
        CREATE TABLE purchases (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            letter_mode VARCHAR(50) NOT NULL,
            mode_name VARCHAR(100),
            stripe_session_id VARCHAR(255) NOT NULL UNIQUE,
            stripe_payment_intent VARCHAR(255),
            amount INTEGER NOT NULL DEFAULT 0,
            currency VARCHAR(3) NOT NULL DEFAULT 'NZD',
            status VARCHAR(20) NOT NULL DEFAULT 'completed',
            used BOOLEAN NOT NULL DEFAULT false,
            used_at TIMESTAMPTZ,
            letter_id UUID REFERENCES letters(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_purchases_user_unused ON purchases (user_id, used)')

    # ==========================================================================
    # Scheduled emails (future letters)
    # ==========================================================================
    op.execute('''
        CREATE TABLE scheduled_emails (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            letter_id UUID NOT NULL REFERENCES letters(id) ON DELETE CASCADE,
            scheduled_for TIMESTAMPTZ NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            error_message TEXT,
            sent_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_scheduled_emails_due ON scheduled_emails (status, scheduled_for)')

    # ==========================================================================
    # Session backups (tokens Fernet-encrypted by the application)
    # ==========================================================================
    op.execute('''
        CREATE TABLE session_backups (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL UNIQUE,
            restore_token VARCHAR(64) NOT NULL UNIQUE,
            access_token TEXT NOT NULL,
            refresh_token TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            expires_at TIMESTAMPTZ NOT NULL
        )
    ''')

    # ==========================================================================
    # Weekly check-ins
    # ==========================================================================
    op.execute('''
        CREATE TABLE checkins (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            mood_rating INTEGER NOT NULL CHECK (mood_rating BETWEEN 1 AND 10),
            energy_level INTEGER NOT NULL CHECK (energy_level BETWEEN 1 AND 10),
            wins TEXT,
            challenges TEXT,
            gratitude TEXT,
            focus_next_week TEXT,
            ai_reflection TEXT,
            week_number INTEGER NOT NULL,
            year INTEGER NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_checkins_user_week UNIQUE (user_id, year, week_number)
        )
    ''')
    op.execute('CREATE INDEX idx_checkins_user_created ON checkins (user_id, created_at)')


def downgrade() -> None:
    op.execute('DROP TABLE IF EXISTS checkins')
    op.execute('DROP TABLE IF EXISTS session_backups')
    op.execute('DROP TABLE IF EXISTS scheduled_emails')
    op.execute('DROP TABLE IF EXISTS purchases')
    op.execute('DROP TABLE IF EXISTS letters')
    op.execute('DROP TABLE IF EXISTS profiles')
