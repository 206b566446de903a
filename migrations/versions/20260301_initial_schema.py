"""Initial ExpenseHub schema

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20260301_initial'
down_revision = None
branch_labels = None
depends_on = None


membership_role = sa.Enum('ADMIN', 'MANAGER', 'EMPLOYEE', name='membership_role')
expense_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'ESCALATED', name='expense_status')
approval_decision = sa.Enum('APPROVE', 'REJECT', name='approval_decision')
approval_type = sa.Enum('MAJORITY', 'PERCENTAGE', name='approval_type')


def upgrade():
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('base_currency', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('role', membership_role, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'company_id', name='uq_membership_user_company'),
    )
    op.create_index('ix_memberships_user_id', 'memberships', ['user_id'])
    op.create_index('ix_memberships_company_id', 'memberships', ['company_id'])

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_projects_company_id', 'projects', ['company_id'])

    op.create_table(
        'project_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'project_id', name='uq_project_assignment'),
    )
    op.create_index('ix_project_assignments_user_id', 'project_assignments', ['user_id'])
    op.create_index('ix_project_assignments_project_id', 'project_assignments', ['project_id'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount_minor', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('paid_by', sa.String(length=100), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('status', expense_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_expenses_project_id', 'expenses', ['project_id'])
    op.create_index('ix_expenses_employee_id', 'expenses', ['employee_id'])

    op.create_table(
        'receipt_files',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('expense_id', sa.Integer(), sa.ForeignKey('expenses.id'), nullable=False),
        sa.Column('url', sa.String(length=512), nullable=False),
        sa.Column('mime', sa.String(length=120), nullable=False),
        sa.Column('size', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_receipt_files_expense_id', 'receipt_files', ['expense_id'])

    op.create_table(
        'approvals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('expense_id', sa.Integer(), sa.ForeignKey('expenses.id'), nullable=False),
        sa.Column('manager_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('decision', approval_decision, nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('decided_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_approvals_expense_id', 'approvals', ['expense_id'])
    op.create_index('ix_approvals_manager_id', 'approvals', ['manager_id'])

    op.create_table(
        'approval_policies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('type', approval_type, nullable=False),
        sa.Column('threshold_percent', sa.Integer(), nullable=True),
        sa.Column('max_per_employee_minor', sa.BigInteger(), nullable=True),
        sa.Column('large_expense_threshold_minor', sa.BigInteger(), nullable=True),
        sa.Column('require_ceo_for_large', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_approval_policies_company_id', 'approval_policies', ['company_id'])

    op.create_table(
        'exchange_rate_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('base_currency', sa.String(length=3), nullable=False),
        sa.Column('rates', sa.JSON(), nullable=False),
        sa.Column('captured_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_exchange_rate_snapshots_company_id', 'exchange_rate_snapshots', ['company_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(length=120), nullable=False),
        sa.Column('entity', sa.String(length=120), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_logs_company_id', 'audit_logs', ['company_id'])


def downgrade():
    op.drop_index('ix_audit_logs_company_id', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_exchange_rate_snapshots_company_id', table_name='exchange_rate_snapshots')
    op.drop_table('exchange_rate_snapshots')
    op.drop_index('ix_approval_policies_company_id', table_name='approval_policies')
    op.drop_table('approval_policies')
    op.drop_index('ix_approvals_manager_id', table_name='approvals')
    op.drop_index('ix_approvals_expense_id', table_name='approvals')
    op.drop_table('approvals')
    op.drop_index('ix_receipt_files_expense_id', table_name='receipt_files')
    op.drop_table('receipt_files')
    op.drop_index('ix_expenses_employee_id', table_name='expenses')
    op.drop_index('ix_expenses_project_id', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('ix_project_assignments_project_id', table_name='project_assignments')
    op.drop_index('ix_project_assignments_user_id', table_name='project_assignments')
    op.drop_table('project_assignments')
    op.drop_index('ix_projects_company_id', table_name='projects')
    op.drop_table('projects')
    op.drop_index('ix_memberships_company_id', table_name='memberships')
    op.drop_index('ix_memberships_user_id', table_name='memberships')
    op.drop_table('memberships')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('companies')

    bind = op.get_bind()
    for enum_type in (approval_type, approval_decision, expense_status, membership_role):
        enum_type.drop(bind, checkfirst=True)
