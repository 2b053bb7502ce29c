"""
Initial migration for Equipstock models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Equipstock models: Equipment, EquipmentUnit, Booking*, StockMovement, ActivityLog."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Equipment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.CharField(db_index=True, max_length=64, verbose_name='Tenant')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('category', models.CharField(blank=True, default='', max_length=100, verbose_name='Categoria')),
                ('status', models.CharField(choices=[('AVAILABLE', 'Disponível'), ('RENTED', 'Alugado'), ('MAINTENANCE', 'Manutenção'), ('INACTIVE', 'Inativo')], db_index=True, default='AVAILABLE', max_length=20, verbose_name='Status')),
                ('tracking_type', models.CharField(choices=[('QUANTITY', 'Quantidade'), ('SERIALIZED', 'Serializado')], default='QUANTITY', help_text='Serializado = uma unidade por número de série', max_length=20, verbose_name='Controle')),
                ('total_stock', models.PositiveIntegerField(default=0, verbose_name='Estoque total')),
                ('available_stock', models.PositiveIntegerField(default=0, verbose_name='Disponível')),
                ('reserved_stock', models.PositiveIntegerField(default=0, verbose_name='Reservado')),
                ('maintenance_stock', models.PositiveIntegerField(default=0, verbose_name='Em manutenção')),
                ('damaged_stock', models.PositiveIntegerField(default=0, verbose_name='Avariado')),
                ('min_stock_level', models.PositiveIntegerField(default=1, help_text='Alerta de estoque baixo quando disponível <= este valor', verbose_name='Estoque mínimo')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Equipamento',
                'verbose_name_plural': 'Equipamentos',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['tenant_id', 'status'], name='equipment_tenant_status_idx')],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(total_stock=models.F('available_stock') + models.F('reserved_stock') + models.F('maintenance_stock') + models.F('damaged_stock')),
                        name='equipment_stock_buckets_balanced',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='EquipmentUnit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.CharField(db_index=True, max_length=64, verbose_name='Tenant')),
                ('serial_number', models.CharField(max_length=100, verbose_name='Número de série')),
                ('internal_code', models.CharField(blank=True, default='', max_length=50, verbose_name='Código interno')),
                ('status', models.CharField(choices=[('AVAILABLE', 'Disponível'), ('RENTED', 'Alugada'), ('MAINTENANCE', 'Manutenção'), ('DAMAGED', 'Avariada'), ('RETIRED', 'Baixada')], db_index=True, default='AVAILABLE', max_length=20, verbose_name='Status')),
                ('acquisition_date', models.DateField(blank=True, null=True, verbose_name='Data de aquisição')),
                ('acquisition_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Custo de aquisição')),
                ('warranty_expiry', models.DateField(blank=True, null=True, verbose_name='Fim da garantia')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('equipment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='units', to='equipstock.equipment', verbose_name='Equipamento')),
            ],
            options={
                'verbose_name': 'Unidade',
                'verbose_name_plural': 'Unidades',
                'ordering': ['-created_at', '-pk'],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant_id', 'serial_number'), name='unique_unit_serial_per_tenant'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.CharField(db_index=True, max_length=64, verbose_name='Tenant')),
                ('booking_number', models.CharField(blank=True, default='', max_length=30, verbose_name='Número')),
                ('customer_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Cliente')),
                ('start_date', models.DateField(db_index=True, verbose_name='Início')),
                ('end_date', models.DateField(db_index=True, verbose_name='Fim')),
                ('status', models.CharField(choices=[('PENDING', 'Pendente'), ('CONFIRMED', 'Confirmada'), ('CANCELLED', 'Cancelada'), ('COMPLETED', 'Concluída')], db_index=True, default='PENDING', max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('equipment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='legacy_bookings', to='equipstock.equipment', verbose_name='Equipamento (legado)')),
            ],
            options={
                'verbose_name': 'Reserva',
                'verbose_name_plural': 'Reservas',
                'ordering': ['start_date', 'pk'],
                'indexes': [models.Index(fields=['status', 'start_date', 'end_date'], name='booking_status_dates_idx')],
            },
        ),
        migrations.CreateModel(
            name='BookingItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=1, verbose_name='Quantidade')),
                ('returned_qty', models.PositiveIntegerField(default=0, verbose_name='Devolvido')),
                ('damaged_qty', models.PositiveIntegerField(default=0, verbose_name='Avariado')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='equipstock.booking', verbose_name='Reserva')),
                ('equipment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='booking_items', to='equipstock.equipment', verbose_name='Equipamento')),
            ],
            options={
                'verbose_name': 'Item da Reserva',
                'verbose_name_plural': 'Itens da Reserva',
                'indexes': [models.Index(fields=['equipment', 'booking'], name='bookingitem_equip_booking_idx')],
            },
        ),
        migrations.CreateModel(
            name='BookingUnit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delivered_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Entregue em')),
                ('returned_at', models.DateTimeField(blank=True, null=True, verbose_name='Devolvido em')),
                ('booking_item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='units', to='equipstock.bookingitem', verbose_name='Item da Reserva')),
                ('unit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rentals', to='equipstock.equipmentunit', verbose_name='Unidade')),
            ],
            options={
                'verbose_name': 'Unidade Locada',
                'verbose_name_plural': 'Unidades Locadas',
                'ordering': ['-delivered_at'],
                'indexes': [models.Index(fields=['unit', 'returned_at'], name='bookingunit_unit_returned_idx')],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.CharField(db_index=True, max_length=64, verbose_name='Tenant')),
                ('type', models.CharField(choices=[('PURCHASE', 'Compra/Entrada'), ('RENTAL_OUT', 'Saída para Locação'), ('RENTAL_RETURN', 'Retorno de Locação'), ('ADJUSTMENT', 'Ajuste Manual'), ('DAMAGE', 'Avaria'), ('LOSS', 'Perda/Extravio'), ('MAINTENANCE_OUT', 'Enviado para Manutenção'), ('MAINTENANCE_IN', 'Retorno de Manutenção')], max_length=20, verbose_name='Tipo')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade')),
                ('previous_stock', models.IntegerField(verbose_name='Disponível antes')),
                ('new_stock', models.IntegerField(verbose_name='Disponível depois')),
                ('deltas', models.JSONField(blank=True, default=dict, help_text='Variação aplicada a cada contador (total, available, ...)', verbose_name='Variações')),
                ('reason', models.CharField(blank=True, default='', max_length=500, verbose_name='Motivo')),
                ('idempotency_key', models.CharField(blank=True, max_length=100, null=True, verbose_name='Chave de idempotência')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('booking', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_movements', to='equipstock.booking', verbose_name='Reserva')),
                ('equipment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='equipstock.equipment', verbose_name='Equipamento')),
                ('unit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='movements', to='equipstock.equipmentunit', verbose_name='Unidade')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Movimentação',
                'verbose_name_plural': 'Movimentações',
                'ordering': ['created_at', 'pk'],
                'indexes': [
                    models.Index(fields=['equipment', 'created_at'], name='movement_equipment_created_idx'),
                    models.Index(fields=['tenant_id', 'type'], name='movement_tenant_type_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant_id', 'idempotency_key'), name='unique_movement_idempotency_key'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.CharField(db_index=True, max_length=64, verbose_name='Tenant')),
                ('action', models.CharField(choices=[('CREATE', 'Criação'), ('UPDATE', 'Atualização'), ('DELETE', 'Exclusão')], max_length=10, verbose_name='Ação')),
                ('entity', models.CharField(max_length=50, verbose_name='Entidade')),
                ('entity_id', models.CharField(max_length=64, verbose_name='ID da Entidade')),
                ('description', models.TextField(verbose_name='Descrição')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Registro de Atividade',
                'verbose_name_plural': 'Registros de Atividade',
                'ordering': ['-created_at', '-pk'],
                'indexes': [models.Index(fields=['entity', 'entity_id'], name='activity_entity_idx')],
            },
        ),
    ]
