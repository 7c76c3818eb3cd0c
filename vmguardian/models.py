#!/usr/bin/env python3
"""
Database models for the VM Guardian dashboard.

Schema:
- User: Accounts with a role (admin/instructor/student) and an account status
- VMType: Provisioning templates (OS family, install media)
- VMRequest: Requests for a VM, decided once by an admin
- VirtualMachine: VMs with the raw status reported by the hypervisor backend
- VMStatusHistory: Lifecycle transitions made through the application
- Notification: Per-user messages (request decisions, admin broadcasts)
- Assignment / Document: Course material
- ResourceUsage: CPU/RAM/storage usage samples per user

All tables use SQLite via SQLAlchemy unless DATABASE_URL says otherwise.
"""

import os
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text
from werkzeug.security import check_password_hash, generate_password_hash

from vmguardian.services.vm_state import map_state, VMState

# Initialize SQLAlchemy (will be bound to Flask app in create_app)
db = SQLAlchemy()


ACCOUNT_STATUSES = ('active', 'inactive', 'suspended', 'pending')
REQUEST_STATUSES = ('pending', 'approved', 'rejected')
NOTIFICATION_TYPES = ('info', 'success', 'warning', 'error')


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    """User account with role-based access."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='student')  # admin, instructor, student
    department = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending')  # active, inactive, suspended, pending
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_active = db.Column(db.DateTime, nullable=True)

    # Relationships
    vms = db.relationship('VirtualMachine', back_populates='owner', lazy='dynamic')
    vm_requests = db.relationship('VMRequest', back_populates='requester', lazy='dynamic')
    notifications = db.relationship('Notification', back_populates='user', lazy='dynamic')

    def set_password(self, password: str) -> None:
        """Hash and store password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify password against stored hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def touch(self) -> None:
        """Record activity (called on login)."""
        self.last_active = datetime.utcnow()

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @property
    def is_instructor(self) -> bool:
        return self.role == 'instructor'

    @property
    def is_student(self) -> bool:
        return self.role == 'student'

    @property
    def can_sign_in(self) -> bool:
        return self.status in ('active', 'pending')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'department': self.department,
            'status': self.status,
            'created_at': _iso(self.created_at),
            'last_active': _iso(self.last_active),
        }

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'


class VMType(db.Model):
    """VM provisioning template."""
    __tablename__ = 'vm_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False, index=True)
    os_type = db.Column(db.String(40), nullable=False)  # linux, windows, macos, other
    iso_path = db.Column(db.String(255), nullable=True)  # Install media, e.g. /var/lib/libvirt/images/ubuntu.iso
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'os_type': self.os_type,
            'iso_path': self.iso_path,
            'description': self.description,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<VMType {self.name} ({self.os_type})>'


class VMRequest(db.Model):
    """A user's request for a VM, decided once by an admin."""
    __tablename__ = 'vm_requests'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    purpose = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    vcpus = db.Column(db.Integer, nullable=False, default=2)
    memory = db.Column(db.Integer, nullable=False, default=2048)  # MB
    storage = db.Column(db.Integer, nullable=False, default=20)  # GB
    duration = db.Column(db.String(40), nullable=True)  # "1 month", "1 semester", ...
    os_type = db.Column(db.String(40), nullable=True)
    course = db.Column(db.String(120), nullable=True)
    vm_type_id = db.Column(db.Integer, db.ForeignKey('vm_types.id'), nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending', index=True)  # pending, approved, rejected
    response_message = db.Column(db.Text, nullable=True)
    vm_id = db.Column(db.Integer, db.ForeignKey('virtual_machines.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    requester = db.relationship('User', back_populates='vm_requests')
    vm_type = db.relationship('VMType')
    vm = db.relationship('VirtualMachine')

    @property
    def is_pending(self) -> bool:
        return self.status == 'pending'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'requester_name': self.requester.name if self.requester else None,
            'requester_email': self.requester.email if self.requester else None,
            'purpose': self.purpose,
            'description': self.description,
            'vcpus': self.vcpus,
            'memory': self.memory,
            'storage': self.storage,
            'duration': self.duration,
            'os_type': self.os_type,
            'course': self.course,
            'vm_type_id': self.vm_type_id,
            'status': self.status,
            'response_message': self.response_message,
            'vm_id': self.vm_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<VMRequest {self.id} by user {self.user_id} [{self.status}]>'


class VirtualMachine(db.Model):
    """A VM and the raw status last reported for it.

    `status` is whatever the backend said ("running", "shut off", "paused"...);
    `state` is the canonical VMState derived from it.
    """
    __tablename__ = 'virtual_machines'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False, index=True)  # Domain/VM name on the hypervisor
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(40), nullable=False, default='creating')
    os = db.Column(db.String(40), nullable=False, default='linux')
    cpu = db.Column(db.Integer, nullable=False, default=2)
    memory = db.Column(db.Integer, nullable=False, default=2048)  # MB
    storage = db.Column(db.Integer, nullable=False, default=20)  # GB
    ip_address = db.Column(db.String(45), nullable=True)  # Only kept while running
    course = db.Column(db.String(120), nullable=True, index=True)
    description = db.Column(db.Text, nullable=True)
    vm_type_id = db.Column(db.Integer, db.ForeignKey('vm_types.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = db.relationship('User', back_populates='vms')
    vm_type = db.relationship('VMType')
    history = db.relationship('VMStatusHistory', back_populates='vm', lazy='dynamic',
                              cascade='all, delete-orphan',
                              order_by='VMStatusHistory.changed_at.desc()')

    @property
    def state(self) -> VMState:
        return map_state(self.status)

    def apply_status(self, raw_status: str, ip_address: str = None) -> None:
        """Store a new raw status; the address only survives while running."""
        self.status = raw_status
        self.updated_at = datetime.utcnow()
        if self.state is VMState.RUNNING:
            if ip_address:
                self.ip_address = ip_address
        else:
            self.ip_address = None

    def to_dict(self, is_admin: bool = False) -> dict:
        from vmguardian.services.vm_state import describe_state

        display = describe_state(self.status, is_admin=is_admin)
        return {
            'id': self.id,
            'name': self.name,
            'user_id': self.user_id,
            'owner_name': self.owner.name if self.owner else None,
            'raw_status': self.status,
            'status': display['state'],
            'status_label': display['label'],
            'badge': display['badge'],
            'actions': display['actions'],
            'os': self.os,
            'cpu': self.cpu,
            'memory': self.memory,
            'storage': self.storage,
            'ip': self.ip_address if self.state is VMState.RUNNING else None,
            'course': self.course,
            'description': self.description,
            'vm_type_id': self.vm_type_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<VirtualMachine {self.name} [{self.status}]>'


class VMStatusHistory(db.Model):
    """One lifecycle transition made through the application."""
    __tablename__ = 'vm_status_history'

    id = db.Column(db.Integer, primary_key=True)
    vm_id = db.Column(db.Integer, db.ForeignKey('virtual_machines.id'), nullable=False, index=True)
    previous_status = db.Column(db.String(40), nullable=True)
    new_status = db.Column(db.String(40), nullable=False)
    action = db.Column(db.String(20), nullable=True)
    changed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    changed_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    vm = db.relationship('VirtualMachine', back_populates='history')
    changed_by = db.relationship('User')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'vm_id': self.vm_id,
            'previous_status': self.previous_status,
            'new_status': self.new_status,
            'action': self.action,
            'changed_by': self.changed_by.name if self.changed_by else None,
            'changed_at': _iso(self.changed_at),
        }


class Notification(db.Model):
    """Message shown to a single user."""
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default='info')  # info, success, warning, error
    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', back_populates='notifications')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'message': self.message,
            'type': self.type,
            'read': self.read,
            'created_at': _iso(self.created_at),
        }


class Assignment(db.Model):
    """Course assignment."""
    __tablename__ = 'assignments'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    course = db.Column(db.String(120), nullable=True, index=True)
    due_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'course': self.course,
            'due_date': _iso(self.due_date),
            'created_at': _iso(self.created_at),
        }


class Document(db.Model):
    """Course document / knowledge-base article."""
    __tablename__ = 'documents'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(80), nullable=True, index=True)
    content = db.Column(db.Text, nullable=False, default='')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'content': self.content,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class ResourceUsage(db.Model):
    """Resource usage sample (percentages) for a user."""
    __tablename__ = 'resources'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    cpu_usage = db.Column(db.Float, nullable=False, default=0.0)
    ram_usage = db.Column(db.Float, nullable=False, default=0.0)
    storage_usage = db.Column(db.Float, nullable=False, default=0.0)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'cpu_usage': self.cpu_usage,
            'ram_usage': self.ram_usage,
            'storage_usage': self.storage_usage,
            'timestamp': _iso(self.timestamp),
        }


def init_db(app):
    """Initialize database with Flask app context.

    Call this in create_app() to set up the database.
    """
    # Set database URI if not already configured
    if 'SQLALCHEMY_DATABASE_URI' not in app.config:
        db_path = os.path.join(os.path.dirname(__file__), 'vm_guardian.db')
        app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{db_path}'
        # Improve SQLite concurrency: allow cross-thread access and increase lock timeout
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'connect_args': {
                'check_same_thread': False,
                'timeout': 15,
            }
        }

    # Disable modification tracking (not needed and impacts performance)
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Initialize SQLAlchemy with the app
    db.init_app(app)

    # Create tables if they don't exist
    with app.app_context():
        if db.engine.dialect.name == 'sqlite' and ':memory:' not in app.config['SQLALCHEMY_DATABASE_URI']:
            # Enable WAL journal mode to reduce write-lock contention
            try:
                db.session.execute(text("PRAGMA journal_mode=WAL;"))
                db.session.execute(text("PRAGMA busy_timeout=15000;"))
                db.session.commit()
            except Exception:
                db.session.rollback()
        db.create_all()
